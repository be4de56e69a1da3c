"""Secret engine adapters, selected by the resource's engine type tag."""

from .adapters import (
    ENGINE_REGISTRY,
    CertificateAdapter,
    DockerCfgAdapter,
    KeyValueV1Adapter,
    KeyValueV2Adapter,
    get_engine_adapter,
    supported_engine_types,
)
from .base import EngineAdapter, RawSecretPayload, SecretValue, normalize_value

__all__ = [
    "ENGINE_REGISTRY",
    "CertificateAdapter",
    "DockerCfgAdapter",
    "EngineAdapter",
    "KeyValueV1Adapter",
    "KeyValueV2Adapter",
    "RawSecretPayload",
    "SecretValue",
    "get_engine_adapter",
    "normalize_value",
    "supported_engine_types",
]
