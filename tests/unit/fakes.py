"""
In-memory stand-ins for Vault and the Kubernetes API used by unit tests.

Vault is simulated with an ``httpx.MockTransport`` serving canned responses
per API path; the Kubernetes API with a CoreV1Api stand-in that assigns and
enforces resource versions like the API server does.
"""

import copy
import threading
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
from kubernetes import client
from kubernetes.client.rest import ApiException

from vault_operator.models import VaultResource

ANNOTATION_DOMAIN = "vault.koudingspawn.de"
HASH_ANNOTATION = f"{ANNOTATION_DOMAIN}/hash"
LAST_UPDATE_ANNOTATION = f"{ANNOTATION_DOMAIN}/last-update"
VAULT_URL = "http://vault.test:8200/v1/"


def kv2_response(data: dict[str, Any], version: int = 1) -> dict[str, Any]:
    """Body of a KV v2 read as returned by Vault."""
    return {
        "request_id": "1cfee2a6-318a-ea12-f5b5-6fd52d74d2c6",
        "lease_id": "",
        "renewable": False,
        "lease_duration": 0,
        "data": {
            "data": data,
            "metadata": {
                "created_time": "2018-12-10T18:59:53.337997Z",
                "deletion_time": "",
                "destroyed": False,
                "version": version,
            },
        },
        "wrap_info": None,
        "warnings": None,
        "auth": None,
    }


def kv1_response(data: dict[str, Any]) -> dict[str, Any]:
    """Body of a KV v1 read as returned by Vault."""
    return {
        "request_id": "6cc090a8-3821-8244-73e4-5ab62b605587",
        "lease_id": "",
        "renewable": False,
        "lease_duration": 2764800,
        "data": data,
        "wrap_info": None,
        "warnings": None,
        "auth": None,
    }


class FakeVault:
    """Canned Vault API responses keyed by API path (without the /v1/ prefix)."""

    def __init__(self):
        self.responses: dict[str, tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def set_kv2(self, path: str, data: dict[str, Any], version: int = 1) -> None:
        mount, _, key = path.partition("/")
        self.responses[f"{mount}/data/{key}"] = (200, kv2_response(data, version))

    def set_kv1(self, path: str, data: dict[str, Any]) -> None:
        self.responses[path] = (200, kv1_response(data))

    def set_response(self, path: str, status: int, body: Any) -> None:
        self.responses[path] = (status, body)

    def requests_for(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == f"/v1/{path}"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v1/")
        if path not in self.responses:
            return httpx.Response(404, json={"errors": []})
        status, body = self.responses[path]
        if isinstance(body, str | bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)


class FakeCoreV1Api:
    """In-memory Secret storage with API-server style resource versions."""

    def __init__(self):
        self.secrets: dict[tuple[str, str], client.V1Secret] = {}
        self.calls: list[tuple[str, str, str]] = []
        self.inject_conflicts = 0
        self._version = 0
        self._lock = threading.Lock()

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _store(self, namespace: str, body: client.V1Secret) -> client.V1Secret:
        stored = copy.deepcopy(body)
        stored.metadata.namespace = namespace
        stored.metadata.resource_version = self._next_version()
        self.secrets[(namespace, stored.metadata.name)] = stored
        return copy.deepcopy(stored)

    def seed(self, secret: client.V1Secret) -> client.V1Secret:
        """Store a Secret without recording an API call."""
        with self._lock:
            return self._store(secret.metadata.namespace, secret)

    def read_namespaced_secret(self, name: str, namespace: str) -> client.V1Secret:
        with self._lock:
            if (namespace, name) not in self.secrets:
                raise ApiException(status=404, reason="Not Found")
            return copy.deepcopy(self.secrets[(namespace, name)])

    def create_namespaced_secret(self, namespace: str, body: client.V1Secret) -> client.V1Secret:
        with self._lock:
            if (namespace, body.metadata.name) in self.secrets:
                raise ApiException(status=409, reason="AlreadyExists")
            self.calls.append(("create", namespace, body.metadata.name))
            return self._store(namespace, body)

    def replace_namespaced_secret(
        self, name: str, namespace: str, body: client.V1Secret
    ) -> client.V1Secret:
        with self._lock:
            current = self.secrets.get((namespace, name))
            if current is None:
                raise ApiException(status=404, reason="Not Found")
            if self.inject_conflicts > 0:
                self.inject_conflicts -= 1
                # Someone else wrote in between
                current.metadata.resource_version = self._next_version()
                raise ApiException(status=409, reason="Conflict")
            if body.metadata.resource_version != current.metadata.resource_version:
                raise ApiException(status=409, reason="Conflict")
            if body.type != current.type:
                raise ApiException(status=422, reason="Invalid")
            self.calls.append(("replace", namespace, name))
            return self._store(namespace, body)

    def delete_namespaced_secret(self, name: str, namespace: str) -> None:
        with self._lock:
            if (namespace, name) not in self.secrets:
                raise ApiException(status=404, reason="Not Found")
            self.calls.append(("delete", namespace, name))
            del self.secrets[(namespace, name)]

    def get(self, namespace: str, name: str) -> client.V1Secret | None:
        return self.secrets.get((namespace, name))

    @property
    def writes(self) -> list[tuple[str, str, str]]:
        return [call for call in self.calls if call[0] in ("create", "replace")]


class TickingClock:
    """Clock that advances one second per reading."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def make_resource(
    name: str = "simple",
    namespace: str = "default",
    type: str = "KEYVALUEV2",
    path: str = "secret/simple",
    uid: str | None = "0b6f7a1c-2d55-4f4e-9a8e-1f2d3c4b5a69",
    **spec: Any,
) -> VaultResource:
    """Build a Vault resource as the kopf handlers would."""
    return VaultResource.from_kubernetes(
        name=name,
        namespace=namespace,
        spec={"type": type, "path": path, **spec},
        uid=uid,
    )
