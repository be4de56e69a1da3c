"""Data models for Vault custom resources."""

from .vault import (
    ResourceIdentity,
    VaultResource,
    VaultSpec,
    VaultType,
    VersionConfiguration,
)

__all__ = [
    "ResourceIdentity",
    "VaultResource",
    "VaultSpec",
    "VaultType",
    "VersionConfiguration",
]
