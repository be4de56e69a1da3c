#!/usr/bin/env python3
"""
Vault Operator - Main entry point for the kopf-based Vault secret operator.

This operator materializes secrets stored in Vault as Kubernetes Secrets:
- Vault custom resources name a backend path and a secret engine type
- Create and update events write the Secret immediately
- A refresh scheduler re-checks every resource and rewrites only on drift

Usage:
    vault-operator
    # Or with kopf directly:
    kopf run -m vault_operator.operator --all-namespaces

Environment Variables:
    VAULT_URL: Vault API base URL including /v1/
    VAULT_TOKEN: Token used for every Vault read
    VAULT_OPERATOR_NAMESPACES: Comma-separated list of namespaces to watch
    REFRESH_INTERVAL_SECONDS: Seconds between refresh cycles
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
"""

import asyncio
import logging
import sys
from typing import Any

import kopf
from kubernetes import config

# Import handler modules to register them with kopf
from vault_operator.handlers import vault  # noqa: F401
from vault_operator.observability.logging import setup_structured_logging
from vault_operator.observability.metrics import MetricsServer
from vault_operator.services import (
    EventHandler,
    RefreshScheduler,
    ResourceRegistry,
    SecretProjector,
    SecretSynchronizer,
)
from vault_operator.settings import settings as operator_settings
from vault_operator.utils.circuit_breaker import VaultCircuitBreaker
from vault_operator.utils.locking import ResourceLocks
from vault_operator.utils.secret_manager import SecretManager
from vault_operator.vault import VaultClient


def configure_logging() -> None:
    """Configure structured logging for the operator based on operator_settings."""
    setup_structured_logging(
        log_level=operator_settings.log_level.upper(),
        enable_json_formatting=operator_settings.json_logs,
        correlation_id_enabled=operator_settings.correlation_ids,
        log_health_probes=operator_settings.log_health_probes,
    )


def get_watched_namespaces() -> list[str] | None:
    """
    Get the list of namespaces to watch from operator_settings.

    Returns:
        List of namespace names, or None to watch all namespaces
    """
    return operator_settings.watched_namespaces


def load_kubernetes_config() -> None:
    """Load in-cluster configuration, falling back to kubeconfig."""
    try:
        config.load_incluster_config()
        logging.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logging.info("Loaded kubeconfig configuration")
        except config.ConfigException:
            logging.error("Failed to load Kubernetes configuration")
            raise


def build_components(memo: kopf.Memo) -> None:
    """
    Wire the synchronization components into the operator memo.

    Both the event handlers and the refresh scheduler share one registry,
    one set of per-resource locks and one Vault client.
    """
    circuit_breaker = VaultCircuitBreaker(
        backend=operator_settings.vault_url,
        fail_max=operator_settings.vault_circuit_breaker_fail_max,
        timeout_duration=operator_settings.vault_circuit_breaker_timeout_seconds,
    )
    memo.vault_client = VaultClient(
        base_url=operator_settings.vault_url,
        token=operator_settings.vault_token,
        timeout=operator_settings.vault_timeout_seconds,
        verify_ssl=operator_settings.vault_verify_ssl,
        circuit_breaker=circuit_breaker,
    )
    memo.registry = ResourceRegistry()
    synchronizer = SecretSynchronizer(
        vault_client=memo.vault_client,
        secret_manager=SecretManager(
            max_conflict_retries=operator_settings.write_conflict_max_retries
        ),
        projector=SecretProjector(operator_settings.annotation_domain),
        locks=ResourceLocks(),
    )
    memo.event_handler = EventHandler(synchronizer, memo.registry)
    memo.refresh_scheduler = RefreshScheduler(synchronizer, memo.registry)


@kopf.on.startup()
async def startup_handler(
    settings: kopf.OperatorSettings, memo: kopf.Memo, **_
) -> None:
    """
    Operator startup configuration.

    This handler runs once when the operator starts up and:
    - Tunes kopf watching and execution settings
    - Loads the Kubernetes configuration
    - Builds the Vault client and synchronization services
    - Starts the metrics server and the refresh scheduler
    """
    logging.info("Starting Vault Operator...")
    settings.watching.reconnect_backoff = 1.0  # Reconnect delay
    settings.execution.max_workers = 20  # Allow concurrent processing

    watched_namespaces = get_watched_namespaces()
    if watched_namespaces:
        logging.info(f"Watching namespaces: {', '.join(watched_namespaces)}")
    else:
        logging.info("Watching all namespaces (cluster-wide mode)")

    load_kubernetes_config()
    build_components(memo)
    logging.info(f"Reading secrets from Vault at {operator_settings.vault_url}")

    # Start metrics server for Prometheus scraping and health checks
    memo.metrics_server = None
    try:
        metrics_server = MetricsServer(
            port=operator_settings.metrics_port, host=operator_settings.metrics_host
        )
        await metrics_server.start()
        memo.metrics_server = metrics_server
    except Exception as e:
        logging.error(f"Failed to start metrics server: {e}")
        # Don't fail operator startup if metrics server fails
        logging.warning("Continuing without metrics server")

    memo.refresh_task = None
    if operator_settings.refresh_enabled:
        memo.refresh_task = asyncio.create_task(
            memo.refresh_scheduler.run_forever(
                interval=operator_settings.refresh_interval_seconds,
                initial_delay=operator_settings.refresh_initial_delay_seconds,
            ),
            name="vault-refresh-scheduler",
        )
    else:
        logging.info("Refresh scheduler disabled; secrets are only written on events")


@kopf.on.cleanup()
async def cleanup_handler(memo: kopf.Memo, **_) -> None:
    """
    Operator cleanup handler.

    Stops the refresh scheduler, closes the Vault connection pool and stops
    the metrics server.
    """
    logging.info("Shutting down Vault Operator...")

    refresh_task = getattr(memo, "refresh_task", None)
    if refresh_task is not None:
        refresh_task.cancel()
        try:
            await refresh_task
        except asyncio.CancelledError:
            logging.info("Refresh scheduler stopped")

    vault_client = getattr(memo, "vault_client", None)
    if vault_client is not None:
        await vault_client.close()

    metrics_server = getattr(memo, "metrics_server", None)
    if metrics_server is not None:
        await metrics_server.stop()


@kopf.on.probe(id="healthz")
async def health_check(memo: kopf.Memo, **_) -> dict[str, Any]:
    """
    Health check probe for Kubernetes liveness/readiness checks.

    Returns:
        Dictionary indicating operator health status
    """
    registry = getattr(memo, "registry", None)
    refresh_task = getattr(memo, "refresh_task", None)
    refreshing = refresh_task is not None and not refresh_task.done()
    return {
        "status": "healthy" if registry is not None else "starting",
        "operator": "vault-operator",
        "tracked_resources": len(registry) if registry is not None else 0,
        "refresh_scheduler": "running" if refreshing else "stopped",
    }


def main() -> None:
    """
    Main entry point for the operator.

    This function:
    1. Configures logging
    2. Determines namespace scope
    3. Runs the kopf operator with appropriate settings
    """
    configure_logging()

    watched_namespaces = get_watched_namespaces()

    try:
        if watched_namespaces:
            # Watch specific namespaces
            kopf.run(
                namespaces=watched_namespaces,
                liveness_endpoint="http://0.0.0.0:8080/healthz",
            )
        else:
            # Watch all namespaces (cluster-wide)
            kopf.run(
                clusterwide=True,
                liveness_endpoint="http://0.0.0.0:8080/healthz",
            )
    except KeyboardInterrupt:
        logging.info("Received shutdown signal")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Operator failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
