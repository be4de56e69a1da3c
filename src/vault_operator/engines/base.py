"""
Base adapter for Vault secret engines.

This module provides the abstract base class for engine-specific adapters that handle:
1. Rewriting the user-given path into the engine's read path
2. Unwrapping the engine's response shape into a flat key/value payload
3. Extracting engine metadata that is reported but never fingerprinted
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from vault_operator.errors import MalformedResponseError
from vault_operator.observability.metrics import metrics_collector

if TYPE_CHECKING:
    from vault_operator.models import VaultSpec
    from vault_operator.vault import VaultClient

logger = logging.getLogger(__name__)

SecretValue = str | bytes


@dataclass
class RawSecretPayload:
    """
    Engine-normalized result of a backend read.

    ``data`` is the key/value content that ends up in the Secret and in the
    fingerprint. ``metadata`` (versions, timestamps) is informational only.
    ``secret_type`` is set when the engine designates a Kubernetes Secret type.
    """

    data: dict[str, SecretValue]
    metadata: dict[str, Any] = field(default_factory=dict)
    secret_type: str | None = None


def normalize_value(value: Any) -> SecretValue:
    """Coerce a JSON value from Vault into Secret-storable text or bytes."""
    if isinstance(value, str | bytes):
        return value
    # Numbers, booleans, nested objects: canonical JSON keeps them stable
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


class EngineAdapter(ABC):
    """
    Abstract base adapter for a Vault secret engine.

    Each engine type has a concrete adapter that handles:
    - Path resolution for that engine
    - Unwrapping the response into a RawSecretPayload
    - Engine-specific Secret type designation
    """

    # Tag matched against spec.type; set by subclasses
    ENGINE_TYPE: ClassVar[str] = ""

    def __init__(self, client: VaultClient):
        """
        Initialize adapter.

        Args:
            client: Vault client used for reads
        """
        self.client = client

    @classmethod
    def from_spec(cls, spec: VaultSpec, client: VaultClient) -> EngineAdapter:
        """Build an adapter configured from a resource spec."""
        return cls(client)

    def resolve_path(self, path: str) -> str:
        """Map the user-given path to the engine's read path."""
        return path.strip("/")

    def request_params(self) -> dict[str, Any] | None:
        """Query parameters for the read, if any."""
        return None

    @abstractmethod
    def extract_payload(self, path: str, response: dict[str, Any]) -> RawSecretPayload:
        """
        Unwrap a backend response into a payload.

        Raises:
            MalformedResponseError: If the response does not have the engine's shape
        """

    async def fetch(self, path: str) -> RawSecretPayload:
        """
        Read the secret at ``path`` and return its normalized payload.

        Args:
            path: Backend path as written in the resource spec

        Returns:
            Normalized payload

        Raises:
            SecretNotAccessibleError: Backend denied, missing path, timeout, or bad shape
        """
        read_path = self.resolve_path(path)
        start_time = time.time()
        success = False
        try:
            response = await self.client.read(read_path, params=self.request_params())
            payload = self.extract_payload(read_path, response)
            success = True
            logger.debug(
                f"Fetched {len(payload.data)} keys from {read_path}",
                extra={"engine_type": self.ENGINE_TYPE, "vault_path": read_path},
            )
            return payload
        finally:
            metrics_collector.record_backend_fetch(
                self.ENGINE_TYPE, success, time.time() - start_time
            )

    def _require_object(
        self, path: str, container: Any, key: str
    ) -> dict[str, Any]:
        """Return ``container[key]`` if it is a JSON object, else fail as malformed."""
        value = container.get(key) if isinstance(container, dict) else None
        if not isinstance(value, dict):
            raise MalformedResponseError(
                path, f"missing '{key}' object", engine_type=self.ENGINE_TYPE
            )
        return value

    def _require_fields(
        self, path: str, data: dict[str, Any], fields: tuple[str, ...]
    ) -> None:
        missing = [f for f in fields if not data.get(f)]
        if missing:
            raise MalformedResponseError(
                path,
                f"missing required field(s): {', '.join(missing)}",
                engine_type=self.ENGINE_TYPE,
            )
