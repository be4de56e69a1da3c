"""
The fetch-compare-project-write sequence shared by events and refreshes.

One call to ``SecretSynchronizer.synchronize`` is one critical section for a
single Vault resource: it holds the resource's lock while it reads the stored
fingerprint, fetches from the backend, and writes the projected Secret.
"""

import time
from collections.abc import Callable
from enum import Enum

from vault_operator.engines import EngineAdapter, get_engine_adapter
from vault_operator.errors import OperatorError
from vault_operator.models import VaultResource, VaultSpec
from vault_operator.observability.logging import OperatorLogger
from vault_operator.observability.metrics import metrics_collector
from vault_operator.utils.locking import ResourceLocks
from vault_operator.utils.secret_manager import SecretManager
from vault_operator.vault import VaultClient

from .change_detector import fingerprint, refresh_is_needed
from .registry import ResourceRegistry
from .secret_projector import SecretProjector


class SyncOutcome(str, Enum):
    """Result of a single synchronization sequence."""

    WRITTEN = "written"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    SKIPPED = "skipped"


class SecretSynchronizer:
    """Runs synchronization sequences for Vault resources."""

    def __init__(
        self,
        vault_client: VaultClient,
        secret_manager: SecretManager,
        projector: SecretProjector,
        locks: ResourceLocks | None = None,
        adapter_factory: Callable[[VaultSpec, VaultClient], EngineAdapter] = get_engine_adapter,
    ):
        """
        Initialize the synchronizer.

        Args:
            vault_client: Client the engine adapters read through
            secret_manager: Reads fingerprints and writes Secrets
            projector: Builds the Secret from a payload
            locks: Per-resource locks shared with every other caller
            adapter_factory: Maps a spec to its engine adapter
        """
        self.vault_client = vault_client
        self.secret_manager = secret_manager
        self.projector = projector
        self.locks = locks or ResourceLocks()
        self.adapter_factory = adapter_factory
        self.logger = OperatorLogger(self.__class__.__name__)

    async def stored_fingerprint(self, resource: VaultResource) -> str | None:
        """Fingerprint annotation of the resource's Secret, if any."""
        return await self.secret_manager.get_fingerprint(
            resource.name, resource.namespace, self.projector.hash_annotation
        )

    async def synchronize(
        self,
        resource: VaultResource,
        force: bool,
        trigger: str,
        registry: ResourceRegistry | None = None,
    ) -> SyncOutcome:
        """
        Bring the resource's Secret in line with the backend.

        With ``force`` the Secret is written unconditionally (explicit
        create/update events). Without it the stored fingerprint is compared
        first and an unchanged payload causes no write at all.

        When a ``registry`` is given, the resource is looked up again once
        the lock is held. A resource that was deleted or changed since the
        caller read it is skipped; the newer event writes its own Secret.

        Args:
            resource: Resource to synchronize
            force: Write even if the fingerprint matches
            trigger: What started the sequence (event, resume, refresh)
            registry: Current resources to re-validate against under the lock

        Returns:
            SyncOutcome.WRITTEN, SyncOutcome.UNCHANGED or SyncOutcome.SKIPPED

        Raises:
            UnrecognizedEngineTypeError: spec.type has no adapter
            SecretNotAccessibleError: The backend could not provide the secret
            KubernetesAPIError: Reading or writing the Secret failed
        """
        name, namespace = resource.name, resource.namespace
        start_time = time.time()

        # Resolving first keeps bad types out of the lock and the write path
        adapter = self.adapter_factory(resource.spec, self.vault_client)

        self.logger.log_sync_start(
            resource_name=name,
            namespace=namespace,
            engine_type=adapter.ENGINE_TYPE,
            trigger=trigger,
        )

        try:
            async with metrics_collector.track_sync(namespace, trigger) as tracked:
                async with self.locks.hold(resource.identity):
                    if registry is not None and registry.get(resource.identity) != resource:
                        tracked["result"] = SyncOutcome.SKIPPED.value
                        self.logger.debug(
                            f"Vault {resource.identity} was changed or deleted, skipping",
                            resource_name=name,
                            namespace=namespace,
                            trigger=trigger,
                        )
                        return SyncOutcome.SKIPPED

                    stored = None if force else await self.stored_fingerprint(resource)
                    payload = await adapter.fetch(resource.spec.path)

                    if not force and not refresh_is_needed(stored, payload):
                        tracked["result"] = SyncOutcome.UNCHANGED.value
                        self.logger.log_sync_unchanged(
                            name, namespace, trigger, time.time() - start_time
                        )
                        return SyncOutcome.UNCHANGED

                    desired = self.projector.project(resource, payload)
                    await self.secret_manager.write_secret(desired)

                tracked["result"] = SyncOutcome.WRITTEN.value
        except Exception as e:
            self.logger.log_sync_error(
                resource_name=name,
                namespace=namespace,
                error=e,
                trigger=trigger,
                duration=time.time() - start_time,
                exc_info=not isinstance(e, OperatorError),
            )
            raise

        self.logger.log_sync_written(
            resource_name=name,
            namespace=namespace,
            fingerprint=fingerprint(payload),
            trigger=trigger,
            duration=time.time() - start_time,
        )
        return SyncOutcome.WRITTEN
