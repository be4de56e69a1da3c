"""
Operator error hierarchy with categorization and retry logic.

This module defines the error types used throughout the Vault operator,
providing clear categorization and integration with kopf's retry mechanisms.
"""

import kopf

from vault_operator.constants import (
    BACKEND_RETRY_DELAY,
    ERROR_SECRET_NOT_ACCESSIBLE,
    ERROR_UNRECOGNIZED_ENGINE,
    ERROR_WRITE_CONFLICT,
)


class OperatorError(Exception):
    """
    Base error class for all operator-related exceptions.

    Provides categorization, retry behavior, and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        retryable: bool = True,
        delay: int = 30,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize operator error.

        Args:
            message: Human-readable error description
            category: Error category (validation, api, configuration, external)
            retryable: Whether kopf should retry this operation
            delay: Suggested retry delay in seconds
            user_action: What user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.category = category
        self.retryable = retryable
        self.delay = delay
        self.user_action = user_action
        self.cause = cause

    def as_kopf_error(self):
        """Convert to appropriate kopf exception type."""
        if self.retryable:
            return kopf.TemporaryError(str(self), delay=self.delay)
        else:
            return kopf.PermanentError(str(self))

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class ValidationError(OperatorError):
    """Error in resource specification validation."""

    def __init__(
        self, message: str, field: str | None = None, user_action: str | None = None
    ):
        action = user_action or "Check resource specification and fix validation errors"
        if field:
            message = f"Validation error in field '{field}': {message}"
        super().__init__(
            message=message, category="validation", retryable=False, user_action=action
        )


class TemporaryError(OperatorError):
    """Temporary error that should be retried."""

    def __init__(self, message: str, delay: int = 30, user_action: str | None = None):
        super().__init__(
            message=message,
            category="temporary",
            retryable=True,
            delay=delay,
            user_action=user_action
            or "Wait for automatic retry or check system status",
        )


class ExternalServiceError(OperatorError):
    """Error communicating with external services."""

    def __init__(
        self,
        service: str,
        message: str,
        retryable: bool = True,
        delay: int = 60,
        user_action: str | None = None,
    ):
        action = user_action or f"Check {service} connectivity and credentials"
        super().__init__(
            message=f"{service} error: {message}",
            category="external",
            retryable=retryable,
            delay=delay,
            user_action=action,
        )


class SecretNotAccessibleError(ExternalServiceError):
    """
    The backend could not provide the secret at a path.

    Covers an unreachable backend, denied access, a missing path, a timed out
    read and an open circuit breaker. Aborts only the current sync sequence.
    """

    def __init__(
        self,
        path: str,
        message: str,
        status_code: int | None = None,
        user_action: str | None = None,
    ):
        self.path = path
        self.status_code = status_code
        if status_code:
            message = f"HTTP {status_code}: {message}"
        super().__init__(
            service="Vault",
            message=ERROR_SECRET_NOT_ACCESSIBLE.format(path, message),
            retryable=True,
            delay=BACKEND_RETRY_DELAY,
            user_action=user_action
            or "Check the Vault path, the token policy and Vault availability",
        )


class MalformedResponseError(SecretNotAccessibleError):
    """The backend answered, but not in the shape the engine expects."""

    def __init__(self, path: str, message: str, engine_type: str | None = None):
        self.engine_type = engine_type
        if engine_type:
            message = f"unexpected {engine_type} response: {message}"
        super().__init__(
            path=path,
            message=message,
            user_action="Check that spec.type matches the secret engine mounted at the path",
        )


class KubernetesAPIError(ExternalServiceError):
    """Error communicating with Kubernetes API."""

    def __init__(self, message: str, reason: str | None = None, retryable: bool = True):
        if reason:
            message = f"{message} (reason: {reason})"

        # Some K8s errors are not retryable
        non_retryable_reasons = {"Forbidden", "Unauthorized", "Invalid"}
        if reason in non_retryable_reasons:
            retryable = False

        super().__init__(
            service="Kubernetes API",
            message=message,
            retryable=retryable,
            user_action="Check RBAC permissions and cluster connectivity",
        )


class WriteConflictError(KubernetesAPIError):
    """Secret writes kept losing the resource-version race."""

    def __init__(self, name: str, namespace: str, attempts: int):
        self.name = name
        self.namespace = namespace
        self.attempts = attempts
        super().__init__(
            ERROR_WRITE_CONFLICT.format(name, namespace, attempts),
            reason="Conflict",
        )


class ConfigurationError(OperatorError):
    """Error in operator or resource configuration."""

    def __init__(
        self, message: str, retryable: bool = False, user_action: str | None = None
    ):
        super().__init__(
            message=message,
            category="configuration",
            retryable=retryable,
            user_action=user_action or "Review and correct configuration",
        )


class UnrecognizedEngineTypeError(ConfigurationError):
    """A Vault resource names an engine type with no registered adapter."""

    def __init__(self, engine_type: str, supported: list[str]):
        self.engine_type = engine_type
        super().__init__(
            message=ERROR_UNRECOGNIZED_ENGINE.format(engine_type, ", ".join(supported)),
            user_action="Set spec.type to one of the supported engine types",
        )
