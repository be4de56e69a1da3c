"""
Structured logging utilities for the Vault operator.

This module provides correlation ID tracking, structured log formatting,
and helpers for logging synchronization events. Secret values are never
passed to these helpers; only names, paths, engine types and fingerprints.
"""

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variable for tracking correlation IDs across async operations
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

# Paths that should be filtered from access logs (health probes)
HEALTH_PROBE_PATHS = frozenset({"/healthz", "/metrics"})

STRUCTURED_FIELDS = (
    "resource_type",
    "resource_name",
    "namespace",
    "operation",
    "trigger",
    "duration",
    "error_type",
    "engine_type",
    "vault_path",
    "fingerprint",
    "http_status",
    "handler_type",
    "outcome",
)


class HealthProbeFilter(logging.Filter):
    """
    Logging filter that suppresses health probe and metrics endpoint logs.

    These endpoints are hit frequently by Kubernetes probes and monitoring
    systems, generating excessive noise in logs during debugging.
    """

    def __init__(self, suppress_health_logs: bool = True):
        super().__init__()
        self.suppress_health_logs = suppress_health_logs

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.suppress_health_logs:
            return True

        message = record.getMessage()
        return all(path not in message for path in HEALTH_PROBE_PATHS)


class CorrelationIDFilter(logging.Filter):
    """Logging filter that adds correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        current_correlation_id = correlation_id.get()
        if not current_correlation_id:
            current_correlation_id = generate_correlation_id()
            correlation_id.set(current_correlation_id)

        record.correlation_id = current_correlation_id
        return True


class StructuredFormatter(logging.Formatter):
    """
    Structured JSON formatter for logs with correlation ID support.

    Formats log records as structured JSON for better parsing and analysis
    in production monitoring systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", ""),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # extra= fields land as record attributes
        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data, default=str)


def generate_correlation_id() -> str:
    """
    Generate a new correlation ID.

    Returns:
        Unique correlation ID string
    """
    return str(uuid.uuid4())[:8]


def set_correlation_id(corr_id: str) -> str:
    """Set the correlation ID for the current context."""
    correlation_id.set(corr_id)
    return corr_id


def get_correlation_id() -> str:
    """Get the current correlation ID, or empty string if none set."""
    return correlation_id.get("")


def setup_structured_logging(
    log_level: str = "INFO",
    enable_json_formatting: bool = True,
    correlation_id_enabled: bool = True,
    log_health_probes: bool = False,
) -> None:
    """
    Set up structured logging for the operator.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_json_formatting: Whether to use JSON formatting
        correlation_id_enabled: Whether to enable correlation ID tracking
        log_health_probes: Whether to log health probe requests (default: False)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()

    if enable_json_formatting:
        formatter: logging.Formatter = StructuredFormatter()
    elif correlation_id_enabled:
        formatter = logging.Formatter(
            "%(asctime)s - %(correlation_id)s - %(name)s - %(levelname)s - %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)

    if correlation_id_enabled:
        handler.addFilter(CorrelationIDFilter())

    if not log_health_probes:
        handler.addFilter(HealthProbeFilter(suppress_health_logs=True))

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Set specific logger levels for third-party libraries
    logging.getLogger("kopf").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


class OperatorLogger:
    """
    Logger for synchronization events with structured logging support.

    Provides convenient methods for logging common operator events
    with proper correlation ID tracking and structured data.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def log_sync_start(
        self,
        resource_name: str,
        namespace: str,
        engine_type: str,
        trigger: str,
        correlation_id: str | None = None,
    ) -> str:
        """
        Log the start of a fetch-compare-write sequence.

        Args:
            resource_name: Name of the Vault resource
            namespace: Namespace of the Vault resource
            engine_type: Engine type tag
            trigger: What started the sequence (event, resume, refresh)
            correlation_id: Optional correlation ID (will generate if not provided)

        Returns:
            The correlation ID used for this operation
        """
        if correlation_id is None:
            correlation_id = generate_correlation_id()

        set_correlation_id(correlation_id)

        self.logger.debug(
            f"Starting {trigger} sync for vault {namespace}/{resource_name}",
            extra={
                "resource_type": "vault",
                "resource_name": resource_name,
                "namespace": namespace,
                "engine_type": engine_type,
                "trigger": trigger,
                "operation": "sync_start",
            },
        )

        return correlation_id

    def log_sync_written(
        self,
        resource_name: str,
        namespace: str,
        fingerprint: str,
        trigger: str,
        duration: float,
    ) -> None:
        """Log a sequence that wrote the Secret."""
        self.logger.info(
            f"Secret {namespace}/{resource_name} synchronized ({trigger})",
            extra={
                "resource_type": "vault",
                "resource_name": resource_name,
                "namespace": namespace,
                "fingerprint": fingerprint,
                "trigger": trigger,
                "operation": "sync_written",
                "duration": duration,
            },
        )

    def log_sync_unchanged(
        self, resource_name: str, namespace: str, trigger: str, duration: float
    ) -> None:
        """Log a sequence that found no drift."""
        self.logger.debug(
            f"Secret {namespace}/{resource_name} is up to date",
            extra={
                "resource_type": "vault",
                "resource_name": resource_name,
                "namespace": namespace,
                "trigger": trigger,
                "operation": "sync_unchanged",
                "duration": duration,
            },
        )

    def log_sync_error(
        self,
        resource_name: str,
        namespace: str,
        error: Exception,
        trigger: str,
        duration: float,
        exc_info: bool = False,
    ) -> None:
        """
        Log a failed sequence.

        Args:
            resource_name: Name of the Vault resource
            namespace: Namespace of the Vault resource
            error: The error that occurred
            trigger: What started the sequence
            duration: Sequence duration in seconds
            exc_info: Include the traceback (for unexpected errors)
        """
        self.logger.error(
            f"Sync failed for vault {namespace}/{resource_name}: {error}",
            extra={
                "resource_type": "vault",
                "resource_name": resource_name,
                "namespace": namespace,
                "trigger": trigger,
                "operation": "sync_error",
                "error_type": type(error).__name__,
                "duration": duration,
            },
            exc_info=exc_info,
        )

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message with extra data."""
        self.logger.debug(message, extra=kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message with extra data."""
        self.logger.info(message, extra=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message with extra data."""
        self.logger.warning(message, extra=kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        """Log error message with extra data."""
        self.logger.error(message, exc_info=exc_info, extra=kwargs)
