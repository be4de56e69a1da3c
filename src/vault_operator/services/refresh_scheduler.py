"""
Periodic refresh of materialized secrets.

Every cycle re-checks each registered Vault resource against the backend and
rewrites its Secret only when the fetched content's fingerprint differs from
the one stored on the Secret. Resources are processed concurrently and a
failure for one never affects the others.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

from vault_operator.errors import UnrecognizedEngineTypeError
from vault_operator.models import ResourceIdentity, VaultResource
from vault_operator.observability.metrics import metrics_collector

from .change_detector import refresh_is_needed
from .registry import ResourceRegistry
from .synchronizer import SecretSynchronizer, SyncOutcome

logger = logging.getLogger(__name__)


@dataclass
class RefreshCycleReport:
    """Per-outcome identities of one refresh cycle."""

    written: list[ResourceIdentity] = field(default_factory=list)
    unchanged: list[ResourceIdentity] = field(default_factory=list)
    failed: list[ResourceIdentity] = field(default_factory=list)
    skipped: list[ResourceIdentity] = field(default_factory=list)
    duration: float = 0.0

    def add(self, identity: ResourceIdentity, outcome: SyncOutcome) -> None:
        getattr(self, outcome.value).append(identity)

    def counts(self) -> dict[str, int]:
        return {outcome.value: len(getattr(self, outcome.value)) for outcome in SyncOutcome}

    @property
    def total(self) -> int:
        return sum(self.counts().values())


class RefreshScheduler:
    """Timer-driven re-synchronization of all registered resources."""

    def __init__(self, synchronizer: SecretSynchronizer, registry: ResourceRegistry):
        """
        Initialize the scheduler.

        Args:
            synchronizer: Runs the per-resource sequences
            registry: Source of the resources to refresh
        """
        self.synchronizer = synchronizer
        self.registry = registry

    async def refresh_is_needed(self, resource: VaultResource) -> bool:
        """
        Check a single resource for drift without writing anything.

        Raises:
            UnrecognizedEngineTypeError: spec.type has no adapter
            SecretNotAccessibleError: The backend could not provide the secret
        """
        adapter = self.synchronizer.adapter_factory(
            resource.spec, self.synchronizer.vault_client
        )
        stored = await self.synchronizer.stored_fingerprint(resource)
        payload = await adapter.fetch(resource.spec.path)
        return refresh_is_needed(stored, payload)

    async def _refresh_one(self, resource: VaultResource) -> SyncOutcome:
        try:
            return await self.synchronizer.synchronize(
                resource, force=False, trigger="refresh", registry=self.registry
            )
        except UnrecognizedEngineTypeError as e:
            logger.warning(
                f"Skipping refresh of vault {resource.identity}: {e}",
                extra={
                    "resource_name": resource.name,
                    "namespace": resource.namespace,
                    "engine_type": resource.spec.type,
                    "outcome": SyncOutcome.SKIPPED.value,
                },
            )
            return SyncOutcome.SKIPPED
        except Exception:
            # Logged by the synchronizer; retried next cycle
            return SyncOutcome.FAILED

    async def run_refresh_cycle(self) -> RefreshCycleReport:
        """
        Refresh every registered resource once.

        Works on a snapshot of the registry, so resources added while the
        cycle runs are picked up by the next one. Resources changed or
        deleted after the snapshot are skipped. Never raises for per-resource
        failures.

        Returns:
            Report of which resources were written, unchanged, failed or skipped
        """
        start_time = time.time()
        resources = self.registry.snapshot()
        logger.debug(f"Starting refresh cycle for {len(resources)} vault resources")

        outcomes = await asyncio.gather(
            *(self._refresh_one(resource) for resource in resources)
        )

        report = RefreshCycleReport()
        for resource, outcome in zip(resources, outcomes, strict=True):
            report.add(resource.identity, outcome)
        report.duration = time.time() - start_time

        metrics_collector.record_refresh_cycle(report.counts(), report.duration)
        logger.info(
            f"Refresh cycle completed: {len(report.written)} written, "
            f"{len(report.unchanged)} unchanged, {len(report.failed)} failed, "
            f"{len(report.skipped)} skipped",
            extra={"operation": "refresh_cycle", "duration": report.duration},
        )
        return report

    async def run_forever(self, interval: float, initial_delay: float = 0.0) -> None:
        """
        Run refresh cycles until cancelled.

        Cycles never overlap; the interval is measured from the end of one
        cycle to the start of the next.
        """
        logger.info(
            f"Refresh scheduler started: interval={interval}s, "
            f"initial_delay={initial_delay}s"
        )
        await asyncio.sleep(initial_delay)
        while True:
            try:
                await self.run_refresh_cycle()
            except Exception as e:
                logger.error(f"Refresh cycle failed: {e}", exc_info=True)
            await asyncio.sleep(interval)
