"""
Kubernetes Secret operations for materialized secrets.

This module reads the stored fingerprint of a Secret and writes projected
Secrets with create-or-replace semantics, retrying on resource-version
conflicts.
"""

import asyncio
import copy
import logging

from kubernetes import client
from kubernetes.client.rest import ApiException

from vault_operator.constants import DEFAULT_WRITE_CONFLICT_RETRIES, SECRET_TYPE_OPAQUE
from vault_operator.errors import KubernetesAPIError, WriteConflictError
from vault_operator.observability.metrics import metrics_collector

logger = logging.getLogger(__name__)


class SecretManager:
    """Manages the Kubernetes Secrets materialized from Vault resources."""

    def __init__(
        self,
        k8s_client: client.ApiClient | None = None,
        max_conflict_retries: int = DEFAULT_WRITE_CONFLICT_RETRIES,
        core_api: client.CoreV1Api | None = None,
    ):
        """
        Initialize secret manager.

        Args:
            k8s_client: Optional Kubernetes API client
            max_conflict_retries: Retries after a 409 before giving up
            core_api: Ready CoreV1Api to use instead of building one
        """
        self.k8s_client = k8s_client
        self.max_conflict_retries = max_conflict_retries
        self._v1: client.CoreV1Api | None = core_api

    @property
    def v1(self) -> client.CoreV1Api:
        """Get CoreV1Api client."""
        if self._v1 is None:
            if self.k8s_client:
                self._v1 = client.CoreV1Api(self.k8s_client)
            else:
                self._v1 = client.CoreV1Api()
        return self._v1

    async def get_secret(self, name: str, namespace: str) -> client.V1Secret | None:
        """
        Retrieve a secret.

        Args:
            name: Secret name
            namespace: Secret namespace

        Returns:
            Secret object if found, None if not found

        Raises:
            KubernetesAPIError: If read fails for reasons other than 404
        """
        try:
            return await asyncio.to_thread(
                self.v1.read_namespaced_secret, name=name, namespace=namespace
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise KubernetesAPIError(
                f"Failed to read secret {namespace}/{name}: {e.reason}",
                reason=e.reason,
            ) from e

    async def get_fingerprint(
        self, name: str, namespace: str, hash_annotation: str
    ) -> str | None:
        """
        Read the fingerprint annotation of a materialized secret.

        Returns:
            The stored fingerprint, or None if the Secret or annotation is absent
        """
        secret = await self.get_secret(name, namespace)
        if secret is None or secret.metadata is None:
            return None
        return (secret.metadata.annotations or {}).get(hash_annotation)

    async def write_secret(self, desired: client.V1Secret) -> str:
        """
        Create or fully replace a secret with the desired state.

        Data, type and annotations of ``desired`` overwrite the stored ones in
        a single write. Labels and annotations set by others are kept. A
        change of Secret type is applied by deleting and re-creating.

        Args:
            desired: Secret as built by the projector

        Returns:
            The write performed: "create", "replace" or "recreate"

        Raises:
            WriteConflictError: Conflicts persisted past the retry budget
            KubernetesAPIError: Any other API failure
        """
        name = desired.metadata.name
        namespace = desired.metadata.namespace
        attempts = self.max_conflict_retries + 1

        for attempt in range(1, attempts + 1):
            existing = await self.get_secret(name, namespace)
            if existing is None:
                operation = "create"
            elif (existing.type or SECRET_TYPE_OPAQUE) != (desired.type or SECRET_TYPE_OPAQUE):
                operation = "recreate"
            else:
                operation = "replace"

            try:
                if operation == "create":
                    await self._create(desired)
                elif operation == "recreate":
                    logger.info(
                        f"Secret type of {namespace}/{name} changes from "
                        f"{existing.type} to {desired.type}, re-creating"
                    )
                    await self._delete(name, namespace)
                    await self._create(desired)
                else:
                    await self._replace(self._merge(existing, desired))
            except ApiException as e:
                # 409: modified since the read; 404 on replace: deleted since the read
                lost_race = e.status == 409 or (e.status == 404 and operation == "replace")
                if not lost_race:
                    raise KubernetesAPIError(
                        f"Failed to write secret {namespace}/{name}: {e.reason}",
                        reason=e.reason,
                    ) from e
                metrics_collector.record_write_conflict(namespace)
                logger.warning(
                    f"Write conflict on secret {namespace}/{name} "
                    f"(attempt {attempt}/{attempts}): {e.reason}"
                )
                continue

            metrics_collector.record_secret_write(namespace, operation)
            logger.debug(f"Secret {namespace}/{name} written ({operation})")
            return operation

        raise WriteConflictError(name, namespace, attempts)

    @staticmethod
    def _merge(existing: client.V1Secret, desired: client.V1Secret) -> client.V1Secret:
        """Build the replace body: desired state on top of foreign metadata."""
        body = copy.deepcopy(desired)
        current = existing.metadata
        body.metadata.resource_version = current.resource_version
        body.metadata.labels = {**(current.labels or {}), **(body.metadata.labels or {})}
        body.metadata.annotations = {
            **(current.annotations or {}),
            **(body.metadata.annotations or {}),
        }
        if not body.metadata.owner_references:
            body.metadata.owner_references = current.owner_references
        return body

    async def _create(self, body: client.V1Secret) -> None:
        await asyncio.to_thread(
            self.v1.create_namespaced_secret,
            namespace=body.metadata.namespace,
            body=body,
        )

    async def _replace(self, body: client.V1Secret) -> None:
        await asyncio.to_thread(
            self.v1.replace_namespaced_secret,
            name=body.metadata.name,
            namespace=body.metadata.namespace,
            body=body,
        )

    async def _delete(self, name: str, namespace: str) -> None:
        try:
            await asyncio.to_thread(
                self.v1.delete_namespaced_secret, name=name, namespace=namespace
            )
        except ApiException as e:
            if e.status != 404:
                raise
