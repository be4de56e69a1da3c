"""Unit tests for the kopf handlers of Vault resources."""

import kopf
import pytest

from tests.unit.fakes import HASH_ANNOTATION
from vault_operator.constants import BACKEND_RETRY_DELAY
from vault_operator.handlers.vault import delete_vault, resume_vault, sync_vault
from vault_operator.models import ResourceIdentity

SPEC = {"type": "KEYVALUEV2", "path": "secret/simple"}
META = {"uid": "0b7c4a52-1d9e-4f0a-9d53-0f1e2a3b4c5d"}


@pytest.fixture
def memo(event_handler, registry):
    memo = kopf.Memo()
    memo.event_handler = event_handler
    memo.registry = registry
    return memo


class TestSyncVault:
    """Test the create/update handler."""

    @pytest.mark.asyncio
    async def test_writes_secret(self, memo, fake_vault, fake_core_api):
        fake_vault.set_kv2("secret/simple", {"key": "value"})

        result = await sync_vault(
            spec=SPEC, name="simple", namespace="default", memo=memo, meta=META
        )

        assert result is None
        secret = fake_core_api.get("default", "simple")
        assert secret.data == {"key": "dmFsdWU="}
        assert secret.metadata.owner_references[0].uid == META["uid"]
        assert HASH_ANNOTATION in secret.metadata.annotations

    @pytest.mark.asyncio
    async def test_lowercase_type_is_accepted(self, memo, fake_vault, fake_core_api):
        fake_vault.set_kv1("secret/simple", {"key": "value"})

        await sync_vault(
            spec={"type": "keyvalue", "path": "secret/simple"},
            name="simple",
            namespace="default",
            memo=memo,
            meta=META,
        )

        assert fake_core_api.get("default", "simple").data == {"key": "dmFsdWU="}

    @pytest.mark.asyncio
    async def test_backend_failure_is_temporary(self, memo, fake_vault):
        """Backend failures are retried by kopf after a delay."""
        fake_vault.set_response("secret/data/simple", 403, {"errors": ["permission denied"]})

        with pytest.raises(kopf.TemporaryError) as exc_info:
            await sync_vault(
                spec=SPEC, name="simple", namespace="default", memo=memo, meta=META
            )

        assert exc_info.value.delay == BACKEND_RETRY_DELAY

    @pytest.mark.asyncio
    async def test_unrecognized_type_is_permanent(self, memo, registry):
        with pytest.raises(kopf.PermanentError) as exc_info:
            await sync_vault(
                spec={"type": "PKI", "path": "pki/issue/web"},
                name="simple",
                namespace="default",
                memo=memo,
                meta=META,
            )

        assert "PKI" in str(exc_info.value)
        assert ResourceIdentity("default", "simple") in registry

    @pytest.mark.asyncio
    async def test_invalid_spec_is_permanent(self, memo, registry, fake_vault):
        with pytest.raises(kopf.PermanentError):
            await sync_vault(
                spec={"type": "KEYVALUE", "path": "  "},
                name="simple",
                namespace="default",
                memo=memo,
                meta=META,
            )

        assert len(registry) == 0
        assert fake_vault.requests == []

    @pytest.mark.asyncio
    async def test_missing_spec_field_is_permanent(self, memo):
        with pytest.raises(kopf.PermanentError):
            await sync_vault(
                spec={"path": "secret/simple"},
                name="simple",
                namespace="default",
                memo=memo,
                meta=META,
            )

    @pytest.mark.asyncio
    async def test_uninitialized_operator_is_temporary(self):
        with pytest.raises(kopf.TemporaryError) as exc_info:
            await sync_vault(
                spec=SPEC, name="simple", namespace="default", memo=kopf.Memo(), meta=META
            )

        assert exc_info.value.delay == 5
        assert "Operator is not initialized yet" in str(exc_info.value)


class TestResumeVault:
    """Test the resume handler."""

    @pytest.mark.asyncio
    async def test_registers_resource(self, memo, registry, fake_vault, fake_core_api):
        fake_vault.set_kv2("secret/simple", {"key": "value"})

        await resume_vault(
            spec=SPEC, name="simple", namespace="default", memo=memo, meta=META
        )

        assert ResourceIdentity("default", "simple") in registry
        assert fake_core_api.get("default", "simple") is not None

    @pytest.mark.asyncio
    async def test_skips_resources_being_deleted(self, memo, registry, fake_vault):
        meta = {**META, "deletionTimestamp": "2024-05-17T08:30:00Z"}

        await resume_vault(
            spec=SPEC, name="simple", namespace="default", memo=memo, meta=meta
        )

        assert len(registry) == 0
        assert fake_vault.requests == []


class TestDeleteVault:
    """Test the delete handler."""

    @pytest.mark.asyncio
    async def test_deregisters_resource(self, memo, registry, fake_vault, fake_core_api):
        fake_vault.set_kv2("secret/simple", {"key": "value"})
        await sync_vault(spec=SPEC, name="simple", namespace="default", memo=memo, meta=META)

        await delete_vault(name="simple", namespace="default", memo=memo)

        assert ResourceIdentity("default", "simple") not in registry
        assert ("delete", "default", "simple") not in fake_core_api.calls

    @pytest.mark.asyncio
    async def test_uninitialized_operator_is_ignored(self):
        await delete_vault(name="simple", namespace="default", memo=kopf.Memo())
