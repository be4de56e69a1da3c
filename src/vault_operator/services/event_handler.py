"""
Event-driven synchronization of Vault resources.

Create and update events always rewrite the Secret; the fingerprint is not
consulted, so an edited resource is re-materialized even when the backend
content did not change. Every observed resource is registered for the
refresh scheduler.
"""

from vault_operator.constants import BACKEND_RETRY_DELAY
from vault_operator.errors import SecretNotAccessibleError, UnrecognizedEngineTypeError
from vault_operator.models import ResourceIdentity, VaultResource
from vault_operator.observability.logging import OperatorLogger

from .registry import ResourceRegistry
from .synchronizer import SecretSynchronizer, SyncOutcome


class EventHandler:
    """Handles add/modify/delete events for Vault resources."""

    def __init__(self, synchronizer: SecretSynchronizer, registry: ResourceRegistry):
        self.synchronizer = synchronizer
        self.registry = registry
        self.logger = OperatorLogger(self.__class__.__name__)

    async def add_handler(
        self, resource: VaultResource, trigger: str = "event"
    ) -> SyncOutcome:
        """
        Materialize the resource's Secret for a create or update event.

        The resource is registered before anything can fail, so the refresh
        scheduler retries it even if this event's sync does not succeed.

        Args:
            resource: The added or modified resource
            trigger: Label for logs and metrics

        Returns:
            SyncOutcome.WRITTEN

        Raises:
            UnrecognizedEngineTypeError: spec.type has no adapter; nothing is written
            SecretNotAccessibleError: Backend read failed; nothing is written
            OperatorError: The Secret write failed
        """
        self.registry.register(resource)
        try:
            return await self.synchronizer.synchronize(resource, force=True, trigger=trigger)
        except UnrecognizedEngineTypeError as e:
            self.logger.error(
                f"Vault {resource.identity} not synchronized: {e}",
                resource_name=resource.name,
                namespace=resource.namespace,
                engine_type=resource.spec.type,
                error_type=type(e).__name__,
            )
            raise
        except SecretNotAccessibleError as e:
            self.logger.warning(
                f"Vault {resource.identity} not synchronized, backend retry in "
                f"{BACKEND_RETRY_DELAY}s: {e}",
                resource_name=resource.name,
                namespace=resource.namespace,
                vault_path=resource.spec.path,
                error_type=type(e).__name__,
            )
            raise

    async def resume_handler(self, resource: VaultResource) -> SyncOutcome:
        """
        Re-register a resource seen again after an operator restart.

        Unlike add_handler the sync is change-detected, so a restart does not
        rewrite Secrets whose backend content is unchanged.
        """
        self.registry.register(resource)
        return await self.synchronizer.synchronize(resource, force=False, trigger="resume")

    def delete_handler(self, identity: ResourceIdentity) -> None:
        """
        Stop tracking a deleted resource.

        The Secret itself is left to Kubernetes garbage collection through its
        owner reference.
        """
        removed = self.registry.deregister(identity)
        self.synchronizer.locks.discard(identity)
        if removed is not None:
            self.logger.info(
                f"Vault {identity} deleted, no longer refreshed",
                resource_name=identity.name,
                namespace=identity.namespace,
            )
