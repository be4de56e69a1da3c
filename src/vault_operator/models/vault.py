"""
Pydantic models for Vault custom resources.

A Vault resource declares which backend path should be materialized into a
Kubernetes Secret of the same name and namespace, and which secret engine
shape the path holds.
"""

from enum import Enum
from typing import Any, NamedTuple

from pydantic import BaseModel, Field, field_validator


class VaultType(str, Enum):
    """Engine type tags understood by the operator."""

    KEYVALUE = "KEYVALUE"
    KEYVALUEV2 = "KEYVALUEV2"
    CERT = "CERT"
    DOCKERCFG = "DOCKERCFG"


class ResourceIdentity(NamedTuple):
    """Cluster-unique identity of a Vault resource."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class VersionConfiguration(BaseModel):
    """Pin a KEYVALUEV2 read to a specific secret version."""

    model_config = {"populate_by_name": True}

    version: int = Field(..., ge=1, description="Secret version to read")


class VaultSpec(BaseModel):
    """Specification of a Vault resource."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    # Kept as a plain string: unknown tags must reach adapter selection
    type: str = Field(..., description="Secret engine type tag")
    path: str = Field(..., description="Backend path of the secret")
    version_configuration: VersionConfiguration | None = Field(
        None,
        alias="versionConfiguration",
        description="Optional version pin for KEYVALUEV2 secrets",
    )

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        path = v.strip().strip("/")
        if not path:
            raise ValueError("path must not be empty")
        return path


class VaultResource(BaseModel):
    """A Vault custom resource as seen by the synchronization core."""

    model_config = {"populate_by_name": True}

    name: str = Field(..., description="Resource name, also the Secret name")
    namespace: str = Field(..., description="Resource namespace")
    uid: str | None = Field(None, description="Resource UID, used for owner references")
    spec: VaultSpec

    @property
    def identity(self) -> ResourceIdentity:
        return ResourceIdentity(self.namespace, self.name)

    @classmethod
    def from_kubernetes(
        cls,
        name: str,
        namespace: str,
        spec: dict[str, Any],
        uid: str | None = None,
    ) -> "VaultResource":
        """
        Build a resource from the pieces kopf hands to a handler.

        Args:
            name: metadata.name
            namespace: metadata.namespace
            spec: The resource spec mapping
            uid: metadata.uid, if known

        Returns:
            Parsed VaultResource
        """
        return cls(
            name=name,
            namespace=namespace,
            uid=uid,
            spec=VaultSpec.model_validate(dict(spec)),
        )
