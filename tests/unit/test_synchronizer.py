"""Unit tests for the shared synchronization sequence."""

import base64
import json
from unittest.mock import AsyncMock, patch

import pytest

from tests.unit.fakes import HASH_ANNOTATION, make_resource
from vault_operator.errors import KubernetesAPIError, SecretNotAccessibleError
from vault_operator.services import SyncOutcome


class TestSynchronize:
    """Test forced and change-detected sequences."""

    @pytest.mark.asyncio
    async def test_forced_sync_always_writes(self, synchronizer, fake_vault, fake_core_api):
        fake_vault.set_kv2("secret/simple", {"key": "value"})
        resource = make_resource()

        first = await synchronizer.synchronize(resource, force=True, trigger="event")
        second = await synchronizer.synchronize(resource, force=True, trigger="event")

        assert first is second is SyncOutcome.WRITTEN
        assert len(fake_core_api.writes) == 2

    @pytest.mark.asyncio
    async def test_unforced_sync_skips_unchanged(self, synchronizer, fake_vault, fake_core_api):
        fake_vault.set_kv2("secret/simple", {"key": "value"})
        resource = make_resource()
        await synchronizer.synchronize(resource, force=True, trigger="event")

        outcome = await synchronizer.synchronize(resource, force=False, trigger="refresh")

        assert outcome is SyncOutcome.UNCHANGED
        assert len(fake_core_api.writes) == 1

    @pytest.mark.asyncio
    async def test_forced_sync_does_not_read_fingerprint(
        self, synchronizer, fake_vault, fake_core_api
    ):
        fake_vault.set_kv2("secret/simple", {"key": "value"})

        with patch.object(synchronizer, "stored_fingerprint", AsyncMock()) as mock_stored:
            await synchronizer.synchronize(make_resource(), force=True, trigger="event")

        mock_stored.assert_not_awaited()
        assert [call[0] for call in fake_core_api.calls] == ["create"]

    @pytest.mark.asyncio
    async def test_hand_edited_hash_triggers_rewrite(
        self, synchronizer, fake_vault, fake_core_api
    ):
        fake_vault.set_kv2("secret/simple", {"key": "value"})
        resource = make_resource()
        await synchronizer.synchronize(resource, force=True, trigger="event")
        fake_core_api.get("default", "simple").metadata.annotations[HASH_ANNOTATION] = "stale"

        outcome = await synchronizer.synchronize(resource, force=False, trigger="refresh")

        assert outcome is SyncOutcome.WRITTEN
        assert fake_core_api.get("default", "simple").metadata.annotations[
            HASH_ANNOTATION
        ] == "5567x7nal69kROaqElQ4mGRE/9GoWovJJNEltsv8gYs="

    @pytest.mark.asyncio
    async def test_version_pin_is_honored(self, synchronizer, fake_vault, fake_core_api):
        fake_vault.set_kv2("secret/simple", {"key": "value"}, version=3)
        resource = make_resource(versionConfiguration={"version": 3})

        await synchronizer.synchronize(resource, force=True, trigger="event")

        assert fake_vault.requests[0].url.params["version"] == "3"

    @pytest.mark.asyncio
    async def test_lock_is_held_during_write(self, synchronizer, fake_vault):
        fake_vault.set_kv2("secret/simple", {"key": "value"})
        resource = make_resource()
        held: list[bool] = []
        write = synchronizer.secret_manager.write_secret

        async def observing_write(desired):
            held.append(synchronizer.locks.is_held(resource.identity))
            return await write(desired)

        with patch.object(synchronizer.secret_manager, "write_secret", observing_write):
            await synchronizer.synchronize(resource, force=True, trigger="event")

        assert held == [True]
        assert not synchronizer.locks.is_held(resource.identity)

    @pytest.mark.asyncio
    async def test_unregistered_resource_is_skipped(
        self, synchronizer, registry, fake_vault, fake_core_api
    ):
        fake_vault.set_kv2("secret/simple", {"key": "value"})

        outcome = await synchronizer.synchronize(
            make_resource(), force=False, trigger="refresh", registry=registry
        )

        assert outcome is SyncOutcome.SKIPPED
        assert fake_vault.requests == []
        assert fake_core_api.calls == []

    @pytest.mark.asyncio
    async def test_registered_resource_is_synced(
        self, synchronizer, registry, fake_vault, fake_core_api
    ):
        fake_vault.set_kv2("secret/simple", {"key": "value"})
        resource = make_resource()
        registry.register(resource)

        outcome = await synchronizer.synchronize(
            resource, force=False, trigger="refresh", registry=registry
        )

        assert outcome is SyncOutcome.WRITTEN
        assert fake_core_api.get("default", "simple") is not None


class TestTypedEngines:
    """Test engines that produce typed Secrets."""

    @pytest.mark.asyncio
    async def test_certificate_secret(self, synchronizer, fake_vault, fake_core_api):
        fake_vault.set_kv1(
            "secret/certs/web",
            {"certificate": "-----BEGIN CERTIFICATE-----", "private_key": "-----BEGIN KEY-----"},
        )
        resource = make_resource(name="web", type="CERT", path="secret/certs/web")

        await synchronizer.synchronize(resource, force=True, trigger="event")

        secret = fake_core_api.get("default", "web")
        assert secret.type == "kubernetes.io/tls"
        assert set(secret.data) == {"tls.crt", "tls.key"}

    @pytest.mark.asyncio
    async def test_dockercfg_secret(self, synchronizer, fake_vault, fake_core_api):
        fake_vault.set_kv1(
            "secret/registry",
            {"url": "registry.example.com", "username": "bot", "password": "hunter2"},
        )
        resource = make_resource(name="pull", type="DOCKERCFG", path="secret/registry")

        await synchronizer.synchronize(resource, force=True, trigger="event")

        secret = fake_core_api.get("default", "pull")
        assert secret.type == "kubernetes.io/dockerconfigjson"
        config = json.loads(base64.b64decode(secret.data[".dockerconfigjson"]))
        assert config["auths"]["registry.example.com"]["username"] == "bot"

    @pytest.mark.asyncio
    async def test_type_change_recreates_secret(self, synchronizer, fake_vault, fake_core_api):
        fake_vault.set_kv1("secret/web", {"certificate": "crt", "private_key": "key"})
        fake_vault.set_kv2("secret/web", {"key": "value"})
        await synchronizer.synchronize(
            make_resource(name="web", path="secret/web"), force=True, trigger="event"
        )

        await synchronizer.synchronize(
            make_resource(name="web", type="CERT", path="secret/web"),
            force=True,
            trigger="event",
        )

        assert fake_core_api.get("default", "web").type == "kubernetes.io/tls"
        assert ("delete", "default", "web") in fake_core_api.calls


class TestFailures:
    """Test that failures leave the cluster untouched."""

    @pytest.mark.asyncio
    async def test_backend_failure_writes_nothing(self, synchronizer, fake_vault, fake_core_api):
        fake_vault.set_response("secret/data/simple", 503, {"errors": ["sealed"]})

        with pytest.raises(SecretNotAccessibleError):
            await synchronizer.synchronize(make_resource(), force=True, trigger="event")

        assert fake_core_api.writes == []

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, synchronizer, fake_vault):
        fake_vault.set_response("secret/data/simple", 403, {"errors": ["denied"]})

        with patch.object(synchronizer.logger, "log_sync_error") as mock_log:
            with pytest.raises(SecretNotAccessibleError):
                await synchronizer.synchronize(make_resource(), force=False, trigger="refresh")

        mock_log.assert_called_once()
        assert mock_log.call_args.kwargs["trigger"] == "refresh"
        assert mock_log.call_args.kwargs["exc_info"] is False

    @pytest.mark.asyncio
    async def test_write_failure_propagates(self, synchronizer, fake_vault):
        fake_vault.set_kv2("secret/simple", {"key": "value"})
        synchronizer.secret_manager.write_secret = AsyncMock(
            side_effect=KubernetesAPIError("Failed to write secret", reason="Forbidden")
        )

        with pytest.raises(KubernetesAPIError):
            await synchronizer.synchronize(make_resource(), force=True, trigger="event")
