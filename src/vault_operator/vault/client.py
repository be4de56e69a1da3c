"""
Vault HTTP API client.

This module provides the read side of the Vault HTTP API used by the engine
adapters. The client handles:
- Token header and TLS configuration
- Bounding every read by a timeout
- Failing fast through a circuit breaker while Vault is down
- Mapping HTTP and transport failures onto SecretNotAccessibleError

Authentication flows (Kubernetes auth, AppRole, token renewal) are out of
scope; the client is given a ready-to-use token.
"""

import asyncio
import logging
from typing import Any

import aiobreaker
import httpx
from opentelemetry import trace

from vault_operator.constants import VAULT_TOKEN_HEADER
from vault_operator.errors import MalformedResponseError, SecretNotAccessibleError
from vault_operator.utils.circuit_breaker import VaultCircuitBreaker

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _error_details(response: httpx.Response) -> str:
    """Extract Vault's ``errors`` list from an error response, if any."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or "no details"
    if isinstance(body, dict) and body.get("errors"):
        return "; ".join(str(e) for e in body["errors"])
    return response.reason_phrase or "no details"


class VaultClient:
    """
    Read-only client for the Vault HTTP API.

    One client is shared by all sync sequences; the underlying
    ``httpx.AsyncClient`` pools connections across them.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 10.0,
        verify_ssl: bool = True,
        circuit_breaker: VaultCircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Vault client.

        Args:
            base_url: Vault API base URL including the /v1/ prefix
            token: Token sent as X-Vault-Token
            timeout: Upper bound in seconds for a single read
            verify_ssl: Verify the server certificate
            circuit_breaker: Optional breaker guarding backend calls
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.token = token
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.circuit_breaker = circuit_breaker
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client (lazy initialization)."""
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self.token:
                headers[VAULT_TOKEN_HEADER] = self.token
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.timeout),
                verify=self.verify_ssl,
                transport=self._transport,
            )
            logger.debug(f"Created httpx client for {self.base_url}")
        return self._client

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _send(self, path: str, params: dict[str, Any] | None) -> httpx.Response:
        response = await asyncio.wait_for(
            self._get_client().get(path, params=params), timeout=self.timeout
        )
        # Only server-side failures count against the circuit breaker
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    async def read(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Read the JSON document stored at a Vault API path.

        Args:
            path: API path relative to the base URL (e.g. "secret/data/simple")
            params: Optional query parameters

        Returns:
            Parsed JSON response body

        Raises:
            SecretNotAccessibleError: Backend unreachable, slow, denied or path missing
            MalformedResponseError: Response body is not a JSON object
        """
        path = path.strip("/")
        with tracer.start_as_current_span("vault.read") as span:
            span.set_attribute("vault.path", path)
            try:
                if self.circuit_breaker is not None:
                    response = await self.circuit_breaker.call(self._send, path, params)
                else:
                    response = await self._send(path, params)
            except (TimeoutError, httpx.TimeoutException) as e:
                span.set_attribute("error", True)
                raise SecretNotAccessibleError(
                    path, f"read timed out after {self.timeout}s"
                ) from e
            except aiobreaker.CircuitBreakerError as e:
                span.set_attribute("error", True)
                raise SecretNotAccessibleError(
                    path, "circuit breaker open, Vault considered unavailable"
                ) from e
            except httpx.HTTPStatusError as e:
                span.set_attribute("error", True)
                raise SecretNotAccessibleError(
                    path,
                    _error_details(e.response),
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                span.set_attribute("error", True)
                raise SecretNotAccessibleError(
                    path, f"Vault unreachable: {type(e).__name__}: {e}"
                ) from e

            span.set_attribute("http.status_code", response.status_code)

            if response.status_code in (401, 403):
                raise SecretNotAccessibleError(
                    path,
                    f"permission denied ({_error_details(response)})",
                    status_code=response.status_code,
                )
            if response.status_code == 404:
                raise SecretNotAccessibleError(
                    path, "path not found", status_code=response.status_code
                )
            if response.status_code != 200:
                raise SecretNotAccessibleError(
                    path, _error_details(response), status_code=response.status_code
                )

            try:
                body = response.json()
            except ValueError as e:
                raise MalformedResponseError(path, "response is not valid JSON") from e

            if not isinstance(body, dict):
                raise MalformedResponseError(path, "response is not a JSON object")

            return body
