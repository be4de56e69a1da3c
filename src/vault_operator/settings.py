"""Centralized operator settings using pydantic-settings.

This module provides a single source of truth for all operator configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from vault_operator.constants import (
    DEFAULT_ANNOTATION_DOMAIN,
    DEFAULT_CIRCUIT_BREAKER_FAIL_MAX,
    DEFAULT_CIRCUIT_BREAKER_TIMEOUT,
    DEFAULT_REFRESH_INITIAL_DELAY,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_VAULT_TIMEOUT,
    DEFAULT_VAULT_URL,
    DEFAULT_WRITE_CONFLICT_RETRIES,
)


class Settings(BaseSettings):
    """Operator configuration loaded from environment variables.

    All settings have sensible defaults for local development. Override via
    environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Vault backend
    vault_url: str = Field(
        default=DEFAULT_VAULT_URL,
        validation_alias="VAULT_URL",
        description="Base URL of the Vault HTTP API, including the /v1/ prefix",
    )
    vault_token: str = Field(
        default="",
        validation_alias="VAULT_TOKEN",
        description="Token sent with every Vault request",
    )
    vault_timeout_seconds: float = Field(
        default=DEFAULT_VAULT_TIMEOUT,
        validation_alias="VAULT_TIMEOUT_SECONDS",
        description="Upper bound for a single Vault read",
    )
    vault_verify_ssl: bool = Field(
        default=True,
        validation_alias="VAULT_VERIFY_SSL",
        description="Verify the Vault server TLS certificate",
    )
    vault_circuit_breaker_fail_max: int = Field(
        default=DEFAULT_CIRCUIT_BREAKER_FAIL_MAX,
        validation_alias="VAULT_CIRCUIT_BREAKER_FAIL_MAX",
        description="Consecutive backend failures before the circuit opens",
    )
    vault_circuit_breaker_timeout_seconds: int = Field(
        default=DEFAULT_CIRCUIT_BREAKER_TIMEOUT,
        validation_alias="VAULT_CIRCUIT_BREAKER_TIMEOUT_SECONDS",
        description="Seconds an open circuit waits before a trial request",
    )

    # Materialized secrets
    annotation_domain: str = Field(
        default=DEFAULT_ANNOTATION_DOMAIN,
        validation_alias="ANNOTATION_DOMAIN",
        description="Prefix for the hash and last-update annotations",
    )
    write_conflict_max_retries: int = Field(
        default=DEFAULT_WRITE_CONFLICT_RETRIES,
        validation_alias="WRITE_CONFLICT_MAX_RETRIES",
        description="Retries after a resource-version conflict on Secret writes",
    )

    # Refresh scheduler
    refresh_enabled: bool = Field(
        default=True,
        validation_alias="REFRESH_ENABLED",
        description="Enable the periodic refresh scheduler",
    )
    refresh_interval_seconds: int = Field(
        default=DEFAULT_REFRESH_INTERVAL,
        validation_alias="REFRESH_INTERVAL_SECONDS",
        description="Interval in seconds between refresh cycles",
    )
    refresh_initial_delay_seconds: int = Field(
        default=DEFAULT_REFRESH_INITIAL_DELAY,
        validation_alias="REFRESH_INITIAL_DELAY_SECONDS",
        description="Delay after startup before the first refresh cycle",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )
    log_health_probes: bool = Field(
        default=False,
        validation_alias="LOG_HEALTH_PROBES",
        description="Log health probe and metrics scrape requests",
    )

    # Namespace watching
    namespaces: str = Field(
        default="",
        validation_alias="VAULT_OPERATOR_NAMESPACES",
        description="Comma-separated list of namespaces to watch (empty = all namespaces)",
    )

    # Metrics and observability
    metrics_port: int = Field(
        default=8081,
        validation_alias="METRICS_PORT",
        description="Port for Prometheus metrics endpoint",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        validation_alias="METRICS_HOST",
        description="Host address to bind metrics server",
    )

    @property
    def watched_namespaces(self) -> list[str] | None:
        """Parse watched namespaces from comma-separated string.

        Returns:
            List of namespace names, or None to watch all namespaces
        """
        if self.namespaces:
            return [ns.strip() for ns in self.namespaces.split(",") if ns.strip()]
        return None


# Global settings instance - initialized once at module import
settings = Settings()
