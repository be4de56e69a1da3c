"""
Per-resource serialization of synchronization sequences.

An event-driven sync and a refresh of the same Vault resource can run
concurrently. Holding the resource's lock for the whole fetch-compare-write
sequence keeps them from interleaving; sequences for different resources
never wait on each other.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from vault_operator.models import ResourceIdentity

logger = logging.getLogger(__name__)


class ResourceLocks:
    """
    Lazily created asyncio locks keyed by resource identity.

    Example:
        locks = ResourceLocks()

        async with locks.hold(resource.identity):
            ...  # fetch, compare, write
    """

    def __init__(self):
        self._locks: dict[ResourceIdentity, asyncio.Lock] = {}
        # Holders plus waiters per identity
        self._users: dict[ResourceIdentity, int] = {}
        self._guard = asyncio.Lock()

    async def _get_lock(self, identity: ResourceIdentity) -> asyncio.Lock:
        # Fast path: lock already exists
        lock = self._locks.get(identity)
        if lock is not None:
            return lock

        async with self._guard:
            # Double-check after acquiring the guard
            if identity not in self._locks:
                self._locks[identity] = asyncio.Lock()
                logger.debug(f"Created sync lock for {identity}")
            return self._locks[identity]

    @asynccontextmanager
    async def hold(self, identity: ResourceIdentity) -> AsyncIterator[None]:
        """Hold the lock for ``identity`` for the duration of the block."""
        self._users[identity] = self._users.get(identity, 0) + 1
        try:
            lock = await self._get_lock(identity)
            async with lock:
                yield
        finally:
            self._users[identity] -= 1
            if not self._users[identity]:
                del self._users[identity]

    def is_held(self, identity: ResourceIdentity) -> bool:
        lock = self._locks.get(identity)
        return lock is not None and lock.locked()

    def discard(self, identity: ResourceIdentity) -> None:
        """Forget the lock of a deleted resource unless a sequence holds or awaits it."""
        if identity not in self._users:
            self._locks.pop(identity, None)

    def __len__(self) -> int:
        return len(self._locks)
