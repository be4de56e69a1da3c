"""Shared logging helper for kopf handlers."""

import logging
from typing import Any

from vault_operator.constants import HANDLER_ENTRY_LOG_LEVEL, RESOURCE_TYPE

logger = logging.getLogger(__name__)


def log_handler_entry(
    handler_type: str,
    name: str,
    namespace: str,
    extra: dict[str, Any] | None = None,
) -> None:
    """Log handler invocation at a configurable level.

    The level comes from the HANDLER_ENTRY_LOG_LEVEL environment variable
    (default: INFO); set it to DEBUG to quiet busy clusters.

    Args:
        handler_type: Type of handler (create, update, resume, delete)
        name: Resource name
        namespace: Resource namespace
        extra: Additional context to include in structured log
    """
    log_extra = {
        "handler_type": handler_type,
        "resource_type": RESOURCE_TYPE,
        "resource_name": name,
        "namespace": namespace,
        "handler_phase": "invoked",
    }
    if extra:
        log_extra.update(extra)

    logger.log(
        HANDLER_ENTRY_LOG_LEVEL,
        f"Handler invoked: {handler_type} {RESOURCE_TYPE}/{name} in {namespace}",
        extra=log_extra,
    )
