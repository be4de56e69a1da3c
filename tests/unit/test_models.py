"""
Unit tests for Pydantic models.

These tests verify that the Vault resource models correctly validate input
and normalize what the handlers receive from the cluster.
"""

import pytest
from pydantic import ValidationError

from vault_operator.models import (
    ResourceIdentity,
    VaultResource,
    VaultSpec,
    VaultType,
)


class TestVaultSpec:
    """Test cases for the Vault resource spec."""

    def test_minimal_spec(self):
        spec = VaultSpec(type="KEYVALUEV2", path="secret/simple")

        assert spec.type == VaultType.KEYVALUEV2
        assert spec.path == "secret/simple"
        assert spec.version_configuration is None

    def test_type_is_normalized(self):
        """Engine type tags are case-insensitive."""
        assert VaultSpec(type=" keyvalue ", path="secret/a").type == "KEYVALUE"

    def test_unknown_type_is_kept(self):
        """Unknown tags are rejected later by adapter selection, not here."""
        assert VaultSpec(type="pki", path="pki/issue/web").type == "PKI"

    def test_path_slashes_are_stripped(self):
        assert VaultSpec(type="KEYVALUE", path="/secret/simple/").path == "secret/simple"

    @pytest.mark.parametrize("path", ["", "   ", "/", "//"])
    def test_empty_path_is_rejected(self, path):
        with pytest.raises(ValidationError) as exc_info:
            VaultSpec(type="KEYVALUE", path=path)
        assert "path must not be empty" in str(exc_info.value)

    def test_missing_fields_are_rejected(self):
        with pytest.raises(ValidationError):
            VaultSpec.model_validate({"path": "secret/simple"})
        with pytest.raises(ValidationError):
            VaultSpec.model_validate({"type": "KEYVALUE"})

    def test_version_configuration_alias(self):
        spec = VaultSpec.model_validate(
            {
                "type": "KEYVALUEV2",
                "path": "secret/simple",
                "versionConfiguration": {"version": 3},
            }
        )
        assert spec.version_configuration.version == 3

    def test_version_must_be_positive(self):
        with pytest.raises(ValidationError):
            VaultSpec.model_validate(
                {
                    "type": "KEYVALUEV2",
                    "path": "secret/simple",
                    "versionConfiguration": {"version": 0},
                }
            )

    def test_unknown_fields_are_ignored(self):
        spec = VaultSpec.model_validate(
            {"type": "KEYVALUE", "path": "secret/simple", "changeAdjustmentCallback": {}}
        )
        assert spec.path == "secret/simple"


class TestVaultResource:
    """Test cases for the resource wrapper."""

    def test_from_kubernetes(self):
        resource = VaultResource.from_kubernetes(
            name="simple",
            namespace="default",
            spec={"type": "KEYVALUE", "path": "secret/simple"},
            uid="abc",
        )

        assert resource.name == "simple"
        assert resource.namespace == "default"
        assert resource.uid == "abc"
        assert resource.spec.type == "KEYVALUE"

    def test_from_kubernetes_accepts_kopf_spec_mapping(self):
        """kopf passes a read-only mapping view rather than a dict."""
        from types import MappingProxyType

        spec = MappingProxyType({"type": "KEYVALUE", "path": "secret/simple"})
        resource = VaultResource.from_kubernetes(name="simple", namespace="default", spec=spec)

        assert resource.uid is None
        assert resource.spec.path == "secret/simple"

    def test_identity(self):
        resource = VaultResource.from_kubernetes(
            name="simple",
            namespace="team-a",
            spec={"type": "KEYVALUE", "path": "secret/simple"},
        )

        assert resource.identity == ResourceIdentity("team-a", "simple")
        assert resource.identity.namespace == "team-a"
        assert str(resource.identity) == "team-a/simple"

    def test_identity_is_hashable(self):
        identities = {ResourceIdentity("a", "x"), ResourceIdentity("a", "x")}
        assert len(identities) == 1
        assert ResourceIdentity("a", "x") != ResourceIdentity("b", "x")
