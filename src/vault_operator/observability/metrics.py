"""
Prometheus metrics for the Vault operator.

This module provides metrics collection for monitoring secret
synchronization, refresh cycles, and backend health.
"""

import logging
import time
from contextlib import asynccontextmanager

# aiohttp is provided transitively by kopf; the metrics server reuses it
# so the HTTP stack matches kopf's own probes.
from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
)
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None

# Metrics definitions
SYNC_TOTAL = Counter(
    "vault_operator_sync_total",
    "Total number of secret synchronization attempts",
    ["namespace", "trigger", "result"],
    registry=None,  # Will be set during initialization
)

SYNC_DURATION = Histogram(
    "vault_operator_sync_duration_seconds",
    "Time spent on a fetch-compare-write sequence",
    ["namespace", "trigger"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=None,
)

SYNC_ERRORS = Counter(
    "vault_operator_sync_errors_total",
    "Total number of synchronization errors",
    ["namespace", "error_type", "retryable"],
    registry=None,
)

SECRET_WRITES_TOTAL = Counter(
    "vault_operator_secret_writes_total",
    "Total number of Kubernetes Secret writes",
    ["namespace", "operation"],
    registry=None,
)

WRITE_CONFLICTS_TOTAL = Counter(
    "vault_operator_write_conflicts_total",
    "Resource-version conflicts hit while writing Secrets",
    ["namespace"],
    registry=None,
)

TRACKED_RESOURCES = Gauge(
    "vault_operator_tracked_resources",
    "Number of Vault resources tracked by the refresh scheduler",
    [],
    registry=None,
)

REFRESH_CYCLE_DURATION = Histogram(
    "vault_operator_refresh_cycle_duration_seconds",
    "Time spent on a full refresh cycle",
    [],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=None,
)

REFRESH_OUTCOMES_TOTAL = Counter(
    "vault_operator_refresh_outcomes_total",
    "Per-resource outcomes of refresh cycles",
    ["outcome"],
    registry=None,
)

REFRESH_LAST_SUCCESS_TIMESTAMP = Gauge(
    "vault_operator_refresh_last_success_timestamp",
    "Unix timestamp of the last completed refresh cycle",
    [],
    registry=None,
)

BACKEND_FETCH_DURATION = Histogram(
    "vault_operator_backend_fetch_duration_seconds",
    "Time spent reading from the Vault backend",
    ["engine_type", "result"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=None,
)

CIRCUIT_BREAKER_STATE = Gauge(
    "vault_operator_circuit_breaker_state",
    "Backend circuit breaker state (0=closed, 1=open, 2=half-open)",
    ["backend"],
    registry=None,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry

    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()

        for metric in [
            SYNC_TOTAL,
            SYNC_DURATION,
            SYNC_ERRORS,
            SECRET_WRITES_TOTAL,
            WRITE_CONFLICTS_TOTAL,
            TRACKED_RESOURCES,
            REFRESH_CYCLE_DURATION,
            REFRESH_OUTCOMES_TOTAL,
            REFRESH_LAST_SUCCESS_TIMESTAMP,
            BACKEND_FETCH_DURATION,
            CIRCUIT_BREAKER_STATE,
        ]:
            _metrics_registry.register(metric)

    return _metrics_registry


class MetricsCollector:
    """Collects and manages metrics for the Vault operator."""

    def __init__(self):
        """Initialize metrics collector."""
        self.registry = get_metrics_registry()

    @asynccontextmanager
    async def track_sync(self, namespace: str, trigger: str):
        """
        Context manager to track one synchronization sequence.

        The body may set ``result`` on the yielded dict (e.g. "unchanged")
        to refine the default "success" outcome.

        Args:
            namespace: Namespace of the Vault resource
            trigger: What started the sequence (event, resume, refresh)
        """
        start_time = time.time()
        outcome = {"result": "success"}

        try:
            yield outcome
        except Exception as e:
            outcome["result"] = "error"

            error_type = type(e).__name__
            retryable = "true" if getattr(e, "retryable", False) else "false"

            SYNC_ERRORS.labels(
                namespace=namespace,
                error_type=error_type,
                retryable=retryable,
            ).inc()

            raise
        finally:
            duration = time.time() - start_time

            SYNC_TOTAL.labels(
                namespace=namespace, trigger=trigger, result=outcome["result"]
            ).inc()
            SYNC_DURATION.labels(namespace=namespace, trigger=trigger).observe(
                duration
            )

    def record_secret_write(self, namespace: str, operation: str) -> None:
        """
        Record a Secret write.

        Args:
            namespace: Namespace of the Secret
            operation: create, replace or recreate
        """
        SECRET_WRITES_TOTAL.labels(namespace=namespace, operation=operation).inc()

    def record_write_conflict(self, namespace: str) -> None:
        """Record a resource-version conflict."""
        WRITE_CONFLICTS_TOTAL.labels(namespace=namespace).inc()

    def record_backend_fetch(
        self, engine_type: str, success: bool, duration: float
    ) -> None:
        """
        Record a backend read.

        Args:
            engine_type: Engine type tag of the adapter that read
            success: Whether the read produced a payload
            duration: Time taken for the read
        """
        BACKEND_FETCH_DURATION.labels(
            engine_type=engine_type, result="success" if success else "failure"
        ).observe(duration)

    def set_tracked_resources(self, count: int) -> None:
        """Update the tracked resources gauge."""
        TRACKED_RESOURCES.set(count)

    def record_refresh_cycle(self, outcomes: dict[str, int], duration: float) -> None:
        """
        Record a completed refresh cycle.

        Args:
            outcomes: Number of resources per outcome name
            duration: Time taken for the cycle
        """
        for outcome, count in outcomes.items():
            if count:
                REFRESH_OUTCOMES_TOTAL.labels(outcome=outcome).inc(count)
        REFRESH_CYCLE_DURATION.observe(duration)
        REFRESH_LAST_SUCCESS_TIMESTAMP.set(time.time())


class MetricsServer:
    """HTTP server for exposing Prometheus metrics."""

    def __init__(self, port: int = 8081, host: str = "0.0.0.0"):
        """
        Initialize metrics server.

        Args:
            port: Port to serve metrics on
            host: Host interface to bind to
        """
        self.port = port
        self.host = host
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Set up HTTP routes for the metrics server."""
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            registry = get_metrics_registry()
            metrics_data = generate_latest(registry)
            return Response(
                body=metrics_data,
                headers={"Content-Type": CONTENT_TYPE_LATEST},
            )
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _healthz_handler(self, request: Request) -> Response:
        """Handle /healthz endpoint for Kubernetes compatibility."""
        return Response(text="ok")

    async def start(self) -> None:
        """Start the metrics server."""
        try:
            self.runner = AppRunner(self.app)
            await self.runner.setup()

            self.site = TCPSite(self.runner, self.host, self.port)
            await self.site.start()

            logger.info(f"Metrics server started on {self.host}:{self.port}")
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the metrics server."""
        try:
            if self.site:
                await self.site.stop()
                self.site = None

            if self.runner:
                await self.runner.cleanup()
                self.runner = None

            logger.info("Metrics server stopped")
        except Exception as e:
            logger.error(f"Error stopping metrics server: {e}")


# Global metrics collector instance
metrics_collector = MetricsCollector()
