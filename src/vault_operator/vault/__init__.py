"""Vault backend access."""

from .client import VaultClient

__all__ = ["VaultClient"]
