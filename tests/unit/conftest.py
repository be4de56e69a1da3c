"""Shared pytest fixtures for synchronization tests."""

import httpx
import pytest

from tests.unit.fakes import (
    ANNOTATION_DOMAIN,
    VAULT_URL,
    FakeCoreV1Api,
    FakeVault,
    TickingClock,
)
from vault_operator.services import (
    EventHandler,
    RefreshScheduler,
    ResourceRegistry,
    SecretProjector,
    SecretSynchronizer,
)
from vault_operator.utils.locking import ResourceLocks
from vault_operator.utils.secret_manager import SecretManager
from vault_operator.vault import VaultClient


@pytest.fixture
def fake_vault() -> FakeVault:
    return FakeVault()


@pytest.fixture
def vault_client(fake_vault) -> VaultClient:
    return VaultClient(
        base_url=VAULT_URL,
        token="test-token",
        timeout=5.0,
        transport=httpx.MockTransport(fake_vault.handler),
    )


@pytest.fixture
def fake_core_api() -> FakeCoreV1Api:
    return FakeCoreV1Api()


@pytest.fixture
def secret_manager(fake_core_api) -> SecretManager:
    return SecretManager(max_conflict_retries=3, core_api=fake_core_api)


@pytest.fixture
def projector() -> SecretProjector:
    return SecretProjector(ANNOTATION_DOMAIN, clock=TickingClock())


@pytest.fixture
def registry() -> ResourceRegistry:
    return ResourceRegistry()


@pytest.fixture
def synchronizer(vault_client, secret_manager, projector) -> SecretSynchronizer:
    return SecretSynchronizer(
        vault_client=vault_client,
        secret_manager=secret_manager,
        projector=projector,
        locks=ResourceLocks(),
    )


@pytest.fixture
def event_handler(synchronizer, registry) -> EventHandler:
    return EventHandler(synchronizer, registry)


@pytest.fixture
def scheduler(synchronizer, registry) -> RefreshScheduler:
    return RefreshScheduler(synchronizer, registry)
