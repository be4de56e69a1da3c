"""
In-memory registry of Vault resources known to the operator.

The event handler keeps it current (register on add/modify, deregister on
delete) and the refresh scheduler reads a snapshot of it every cycle.
"""

import logging

from vault_operator.models import ResourceIdentity, VaultResource
from vault_operator.observability.metrics import metrics_collector

logger = logging.getLogger(__name__)


class ResourceRegistry:
    """Latest known spec per resource identity."""

    def __init__(self):
        self._resources: dict[ResourceIdentity, VaultResource] = {}

    def register(self, resource: VaultResource) -> None:
        """Insert or replace the entry for the resource's identity."""
        replaced = resource.identity in self._resources
        self._resources[resource.identity] = resource
        metrics_collector.set_tracked_resources(len(self._resources))
        logger.debug(
            f"{'Updated' if replaced else 'Registered'} vault {resource.identity}"
        )

    def deregister(self, identity: ResourceIdentity) -> VaultResource | None:
        """Remove an entry; returns the removed resource, if any."""
        removed = self._resources.pop(identity, None)
        metrics_collector.set_tracked_resources(len(self._resources))
        if removed is not None:
            logger.debug(f"Deregistered vault {identity}")
        return removed

    def get(self, identity: ResourceIdentity) -> VaultResource | None:
        return self._resources.get(identity)

    def snapshot(self) -> list[VaultResource]:
        """Copy of the current entries; later changes do not affect it."""
        return list(self._resources.values())

    def __contains__(self, identity: object) -> bool:
        return identity in self._resources

    def __len__(self) -> int:
        return len(self._resources)
