"""Logging and metrics for the Vault operator."""

from .logging import OperatorLogger, setup_structured_logging
from .metrics import MetricsServer, metrics_collector

__all__ = [
    "MetricsServer",
    "OperatorLogger",
    "metrics_collector",
    "setup_structured_logging",
]
