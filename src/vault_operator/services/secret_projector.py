"""
Projection of fetched payloads into Kubernetes Secrets.

The projector is a pure builder: it turns a Vault resource and a payload
into the V1Secret that should exist, and leaves the write to SecretManager.
"""

import base64
from collections.abc import Callable
from datetime import UTC, datetime

from kubernetes import client

from vault_operator.constants import (
    HASH_ANNOTATION,
    LAST_UPDATE_ANNOTATION,
    OPERATOR_LABEL_KEY,
    OPERATOR_LABEL_VALUE,
    SECRET_TYPE_OPAQUE,
    VAULT_GROUP,
    VAULT_KIND,
    VAULT_VERSION,
)
from vault_operator.engines import RawSecretPayload, SecretValue
from vault_operator.models import VaultResource

from .change_detector import fingerprint


def encode_value(value: SecretValue) -> str:
    """Base64-encode a value for the Secret ``data`` field."""
    raw = value.encode("utf-8") if isinstance(value, str) else bytes(value)
    return base64.b64encode(raw).decode("ascii")


class SecretProjector:
    """Builds the MaterializedSecret for a resource and payload."""

    def __init__(
        self,
        annotation_domain: str,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the projector.

        Args:
            annotation_domain: Prefix for the hash and last-update annotations
            clock: Source of the last-update timestamp (defaults to UTC now)
        """
        self.annotation_domain = annotation_domain.rstrip("/")
        self.clock = clock or (lambda: datetime.now(UTC))

    @property
    def hash_annotation(self) -> str:
        return f"{self.annotation_domain}{HASH_ANNOTATION}"

    @property
    def last_update_annotation(self) -> str:
        return f"{self.annotation_domain}{LAST_UPDATE_ANNOTATION}"

    def project(self, resource: VaultResource, payload: RawSecretPayload) -> client.V1Secret:
        """
        Build the Secret that materializes ``payload`` for ``resource``.

        Args:
            resource: The Vault resource; its name and namespace name the Secret
            payload: Freshly fetched payload

        Returns:
            Secret with encoded data, type, and hash/last-update annotations
        """
        owner_references = None
        if resource.uid:
            owner_references = [
                client.V1OwnerReference(
                    api_version=f"{VAULT_GROUP}/{VAULT_VERSION}",
                    kind=VAULT_KIND,
                    name=resource.name,
                    uid=resource.uid,
                    controller=True,
                    block_owner_deletion=False,
                )
            ]

        return client.V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=client.V1ObjectMeta(
                name=resource.name,
                namespace=resource.namespace,
                labels={OPERATOR_LABEL_KEY: OPERATOR_LABEL_VALUE},
                annotations={
                    self.last_update_annotation: self.clock().isoformat(),
                    self.hash_annotation: fingerprint(payload),
                },
                owner_references=owner_references,
            ),
            type=payload.secret_type or SECRET_TYPE_OPAQUE,
            data={key: encode_value(value) for key, value in payload.data.items()},
        )
