"""
Change detection for materialized secrets.

The fingerprint of a payload is stored as an annotation on the Secret it was
written to. Comparing a fresh payload's fingerprint with the stored one tells
the refresh scheduler whether a write is needed without decoding the Secret.
"""

import base64
import hashlib
from collections.abc import Mapping

from vault_operator.engines import RawSecretPayload, SecretValue


def _netstring(value: SecretValue) -> bytes:
    raw = value.encode("utf-8") if isinstance(value, str) else bytes(value)
    return str(len(raw)).encode("ascii") + b":" + raw + b","


def fingerprint(payload: RawSecretPayload | Mapping[str, SecretValue]) -> str:
    """
    Compute the fingerprint of a secret's key/value content.

    Keys are sorted and every key and value is length-prefixed, so key order
    never matters and no two distinct mappings share a canonical form.
    Payload metadata is not part of the input.

    Args:
        payload: A payload, or its bare key/value mapping

    Returns:
        Base64-encoded SHA-256 digest
    """
    data = payload.data if isinstance(payload, RawSecretPayload) else payload
    digest = hashlib.sha256()
    for key in sorted(data):
        digest.update(_netstring(key))
        digest.update(_netstring(data[key]))
    return base64.b64encode(digest.digest()).decode("ascii")


def refresh_is_needed(stored_fingerprint: str | None, payload: RawSecretPayload) -> bool:
    """
    Decide whether the Secret must be rewritten for a freshly fetched payload.

    Args:
        stored_fingerprint: Hash annotation of the current Secret, None if absent
        payload: Freshly fetched payload

    Returns:
        True when there is no stored fingerprint or it differs from the payload's
    """
    if not stored_fingerprint:
        return True
    return fingerprint(payload) != stored_fingerprint
