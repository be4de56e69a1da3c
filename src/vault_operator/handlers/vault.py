"""
Vault resource handlers - Materializes Vault secrets as Kubernetes Secrets.

This module binds kopf events for Vault custom resources to the EventHandler:
- create/update: fetch from Vault and rewrite the Secret unconditionally
- resume: re-register after an operator restart, writing only on drift
- delete: stop refreshing; the Secret is garbage-collected via its owner reference

Operator errors are converted with ``as_kopf_error()`` so kopf retries
backend failures and gives up on unsupported engine types.
"""

from __future__ import annotations

import logging
from typing import Any

import kopf
from pydantic import ValidationError as SpecValidationError

from vault_operator.constants import VAULT_GROUP, VAULT_PLURAL, VAULT_VERSION
from vault_operator.errors import OperatorError, TemporaryError, ValidationError
from vault_operator.models import ResourceIdentity, VaultResource
from vault_operator.services import EventHandler
from vault_operator.utils.handler_logging import log_handler_entry

logger = logging.getLogger(__name__)


def _parse_resource(
    name: str, namespace: str, spec: dict[str, Any], meta: dict[str, Any]
) -> VaultResource:
    try:
        return VaultResource.from_kubernetes(
            name=name, namespace=namespace, spec=spec, uid=meta.get("uid")
        )
    except SpecValidationError as e:
        error = ValidationError(f"invalid Vault spec: {e.errors(include_url=False)}")
        raise error.as_kopf_error() from e


def _event_handler(memo: kopf.Memo) -> EventHandler:
    handler = getattr(memo, "event_handler", None)
    if handler is None:
        raise TemporaryError("Operator is not initialized yet", delay=5).as_kopf_error()
    return handler


@kopf.on.create(VAULT_PLURAL, group=VAULT_GROUP, version=VAULT_VERSION)
@kopf.on.update(VAULT_PLURAL, group=VAULT_GROUP, version=VAULT_VERSION)
async def sync_vault(
    spec: dict[str, Any],
    name: str,
    namespace: str,
    memo: kopf.Memo,
    **kwargs: Any,
) -> None:
    """
    Materialize a created or modified Vault resource.

    Args:
        spec: Vault resource specification
        name: Name of the Vault resource (and of its Secret)
        namespace: Namespace of the Vault resource
        memo: Operator memo holding the EventHandler
    """
    log_handler_entry(str(kwargs.get("reason", "create/update")), name, namespace)

    resource = _parse_resource(name, namespace, spec, kwargs.get("meta", {}))
    try:
        await _event_handler(memo).add_handler(resource)
    except OperatorError as e:
        raise e.as_kopf_error() from e
    # Return None to avoid Kopf creating status subpaths
    return None


@kopf.on.resume(VAULT_PLURAL, group=VAULT_GROUP, version=VAULT_VERSION)
async def resume_vault(
    spec: dict[str, Any],
    name: str,
    namespace: str,
    memo: kopf.Memo,
    **kwargs: Any,
) -> None:
    """Re-register an existing Vault resource after an operator restart."""
    log_handler_entry("resume", name, namespace)

    meta = kwargs.get("meta", {})
    if meta.get("deletionTimestamp"):
        logger.info(f"Vault {namespace}/{name} is being deleted, not resuming")
        return None

    resource = _parse_resource(name, namespace, spec, meta)
    try:
        await _event_handler(memo).resume_handler(resource)
    except OperatorError as e:
        raise e.as_kopf_error() from e
    return None


@kopf.on.delete(VAULT_PLURAL, group=VAULT_GROUP, version=VAULT_VERSION, optional=True)
async def delete_vault(
    name: str,
    namespace: str,
    memo: kopf.Memo,
    **kwargs: Any,
) -> None:
    """Stop tracking a deleted Vault resource."""
    log_handler_entry("delete", name, namespace)

    handler = getattr(memo, "event_handler", None)
    if handler is not None:
        handler.delete_handler(ResourceIdentity(namespace, name))
