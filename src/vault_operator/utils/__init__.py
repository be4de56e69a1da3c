"""
Utils package - helpers shared by the synchronization services.

Contains helper modules for:
- Kubernetes Secret reads and writes
- Circuit breaking of Vault reads
- Per-resource locking
- Handler entry logging
"""

from vault_operator.utils.circuit_breaker import VaultCircuitBreaker
from vault_operator.utils.handler_logging import log_handler_entry
from vault_operator.utils.locking import ResourceLocks
from vault_operator.utils.secret_manager import SecretManager

__all__ = [
    "ResourceLocks",
    "SecretManager",
    "VaultCircuitBreaker",
    "log_handler_entry",
]
