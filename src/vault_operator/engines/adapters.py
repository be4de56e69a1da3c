"""
Engine-specific adapters for Vault secret engines.

Each adapter handles:
- Path resolution for its engine
- Response unwrapping into a RawSecretPayload
- Secret type designation for engines that produce typed Secrets
"""

from __future__ import annotations

import base64
import json
import logging
from typing import TYPE_CHECKING, Any

from vault_operator.constants import (
    KV2_DATA_SEGMENT,
    SECRET_TYPE_DOCKERCONFIGJSON,
    SECRET_TYPE_TLS,
)
from vault_operator.errors import SecretNotAccessibleError, UnrecognizedEngineTypeError
from vault_operator.models import VaultType

from .base import EngineAdapter, RawSecretPayload, normalize_value

if TYPE_CHECKING:
    from vault_operator.models import VaultSpec
    from vault_operator.vault import VaultClient

logger = logging.getLogger(__name__)


# =============================================================================
# Key/value engines
# =============================================================================


class KeyValueV1Adapter(EngineAdapter):
    """
    Adapter for the unversioned KV engine.

    The path is read as-is and the secret is the flat ``data`` object.
    """

    ENGINE_TYPE = VaultType.KEYVALUE.value

    def extract_payload(self, path: str, response: dict[str, Any]) -> RawSecretPayload:
        data = self._require_object(path, response, "data")
        return RawSecretPayload(
            data={key: normalize_value(value) for key, value in data.items()},
            metadata={"lease_duration": response.get("lease_duration")},
        )


class KeyValueV2Adapter(EngineAdapter):
    """
    Adapter for the versioned KV engine.

    ``secret/simple`` is read from ``secret/data/simple``; the secret is the
    nested ``data.data`` object and ``data.metadata.version`` is kept as
    metadata. A pinned version is requested with ``?version=N``.
    """

    ENGINE_TYPE = VaultType.KEYVALUEV2.value

    def __init__(self, client: VaultClient, version: int | None = None):
        super().__init__(client)
        self.version = version

    @classmethod
    def from_spec(cls, spec: VaultSpec, client: VaultClient) -> KeyValueV2Adapter:
        version = spec.version_configuration.version if spec.version_configuration else None
        return cls(client, version=version)

    def resolve_path(self, path: str) -> str:
        mount, _, key = path.strip("/").partition("/")
        if not mount or not key:
            raise SecretNotAccessibleError(
                path,
                "KEYVALUEV2 paths need a mount and a key, e.g. 'secret/simple'",
            )
        return f"{mount}/{KV2_DATA_SEGMENT}/{key}"

    def request_params(self) -> dict[str, Any] | None:
        if self.version is not None:
            return {"version": self.version}
        return None

    def extract_payload(self, path: str, response: dict[str, Any]) -> RawSecretPayload:
        envelope = self._require_object(path, response, "data")
        data = self._require_object(path, envelope, "data")
        secret_metadata = envelope.get("metadata")
        metadata: dict[str, Any] = {}
        if isinstance(secret_metadata, dict):
            metadata = {
                "version": secret_metadata.get("version"),
                "created_time": secret_metadata.get("created_time"),
            }
        return RawSecretPayload(
            data={key: normalize_value(value) for key, value in data.items()},
            metadata=metadata,
        )


# =============================================================================
# Typed-secret engines
# =============================================================================


class CertificateAdapter(EngineAdapter):
    """
    Adapter for certificates stored in a KV entry.

    The entry holds ``certificate``, ``private_key`` and optionally
    ``issuing_ca``; they are projected as a ``kubernetes.io/tls`` Secret.
    """

    ENGINE_TYPE = VaultType.CERT.value

    def extract_payload(self, path: str, response: dict[str, Any]) -> RawSecretPayload:
        data = self._require_object(path, response, "data")
        self._require_fields(path, data, ("certificate", "private_key"))

        projected = {
            "tls.crt": normalize_value(data["certificate"]),
            "tls.key": normalize_value(data["private_key"]),
        }
        if data.get("issuing_ca"):
            projected["ca.crt"] = normalize_value(data["issuing_ca"])

        return RawSecretPayload(data=projected, secret_type=SECRET_TYPE_TLS)


class DockerCfgAdapter(EngineAdapter):
    """
    Adapter for container registry credentials stored in a KV entry.

    The entry holds ``url``, ``username``, ``password`` and optionally
    ``email``; they are projected as a ``.dockerconfigjson`` document.
    """

    ENGINE_TYPE = VaultType.DOCKERCFG.value

    def extract_payload(self, path: str, response: dict[str, Any]) -> RawSecretPayload:
        data = self._require_object(path, response, "data")
        self._require_fields(path, data, ("url", "username", "password"))

        username = str(data["username"])
        password = str(data["password"])
        auth = base64.b64encode(f"{username}:{password}".encode()).decode()
        entry = {"username": username, "password": password, "auth": auth}
        if data.get("email"):
            entry["email"] = str(data["email"])

        # sort_keys keeps the document byte-stable across reads
        config = json.dumps({"auths": {str(data["url"]): entry}}, sort_keys=True)
        return RawSecretPayload(
            data={".dockerconfigjson": config},
            secret_type=SECRET_TYPE_DOCKERCONFIGJSON,
        )


# =============================================================================
# Adapter Registry
# =============================================================================

ENGINE_REGISTRY: dict[str, type[EngineAdapter]] = {
    adapter.ENGINE_TYPE: adapter
    for adapter in (
        KeyValueV1Adapter,
        KeyValueV2Adapter,
        CertificateAdapter,
        DockerCfgAdapter,
    )
}


def supported_engine_types() -> list[str]:
    """Engine type tags with a registered adapter."""
    return sorted(ENGINE_REGISTRY)


def get_engine_adapter(spec: VaultSpec, client: VaultClient) -> EngineAdapter:
    """
    Get the adapter for a resource's engine type.

    Args:
        spec: Resource spec naming the engine type
        client: Vault client the adapter reads through

    Returns:
        Adapter configured for the spec

    Raises:
        UnrecognizedEngineTypeError: If no adapter is registered for spec.type
    """
    adapter_class = ENGINE_REGISTRY.get(spec.type.upper())
    if adapter_class is None:
        raise UnrecognizedEngineTypeError(spec.type, supported_engine_types())

    return adapter_class.from_spec(spec, client)
