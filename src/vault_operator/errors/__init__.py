"""
Error handling module for the Vault operator.

This module provides a comprehensive error hierarchy that integrates with kopf
and provides clear categorization for different types of failures.
"""

from .operator_errors import (
    ConfigurationError,
    ExternalServiceError,
    KubernetesAPIError,
    MalformedResponseError,
    OperatorError,
    SecretNotAccessibleError,
    TemporaryError,
    UnrecognizedEngineTypeError,
    ValidationError,
    WriteConflictError,
)

__all__ = [
    "OperatorError",
    "ValidationError",
    "TemporaryError",
    "ExternalServiceError",
    "SecretNotAccessibleError",
    "MalformedResponseError",
    "KubernetesAPIError",
    "WriteConflictError",
    "ConfigurationError",
    "UnrecognizedEngineTypeError",
]
