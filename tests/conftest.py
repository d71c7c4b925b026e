"""Fakes of the Kubernetes API shared by the tests."""

from __future__ import annotations

import base64
import copy
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml
from kubernetes.client.exceptions import ApiException

from toolchainclusteroperator import state
from toolchainclusteroperator.healthprobe import HealthProbe
from toolchainclusteroperator.registry import (
    ClusterRegistry,
    ClusterRole,
    RegistryEntry,
)

NAMESPACE = "test-namespace"


class FakeCustomObjectsApi:
    """In-memory stand-in for `kubernetes.client.CustomObjectsApi`.

    ``mock_get`` and ``mock_status_update``, when set, replace the default
    behavior of the corresponding calls.
    """

    def __init__(self, objects: list[dict[str, Any]]) -> None:
        self.objects = {
            (o["metadata"]["namespace"], o["metadata"]["name"]): o
            for o in objects
        }
        self.mock_get: Callable[..., dict[str, Any]] | None = None
        self.mock_status_update: Callable[..., dict[str, Any]] | None = None
        self.request_timeouts: dict[str, list[float | None]] = {
            "get": [],
            "update_status": [],
        }

    def get_namespaced_custom_object(
        self, *, group: str, version: str, namespace: str, plural: str,
        name: str, _request_timeout: float | None = None,
    ) -> dict[str, Any]:
        self.request_timeouts["get"].append(_request_timeout)
        if self.mock_get is not None:
            return self.mock_get(namespace=namespace, name=name)
        try:
            return copy.deepcopy(self.objects[(namespace, name)])
        except KeyError:
            raise ApiException(status=404, reason="Not Found") from None

    def replace_namespaced_custom_object_status(
        self, *, group: str, version: str, namespace: str, plural: str,
        name: str, body: dict[str, Any], _request_timeout: float | None = None,
    ) -> dict[str, Any]:
        self.request_timeouts["update_status"].append(_request_timeout)
        if self.mock_status_update is not None:
            return self.mock_status_update(body)
        stored = self.objects[(namespace, name)]
        stored["status"] = copy.deepcopy(body["status"])
        return copy.deepcopy(stored)


class FakeResponse:
    def __init__(self, data: bytes) -> None:
        self.data = data


class FakeCoreV1Api:
    def __init__(self, secrets: list[dict[str, Any]]) -> None:
        self.secrets = {
            (s["metadata"]["namespace"], s["metadata"]["name"]): s
            for s in secrets
        }

    def read_namespaced_secret(
        self, *, name: str, namespace: str, _preload_content: bool
    ) -> FakeResponse:
        try:
            secret = self.secrets[(namespace, name)]
        except KeyError:
            raise ApiException(status=404, reason="Not Found") from None
        return FakeResponse(json.dumps(secret).encode("utf-8"))


class FakeK8sClient:
    """Stand-in for the `kubernetes.client` module."""

    def __init__(self, *objects: dict[str, Any]) -> None:
        self.custom_objects_api = FakeCustomObjectsApi(
            [o for o in objects if o["kind"] == "ToolchainCluster"]
        )
        self.core_v1_api = FakeCoreV1Api(
            [o for o in objects if o["kind"] == "Secret"]
        )

    def CustomObjectsApi(self) -> FakeCustomObjectsApi:  # noqa: N802
        return self.custom_objects_api

    def CoreV1Api(self) -> FakeCoreV1Api:  # noqa: N802
        return self.core_v1_api

    def get_conditions(self, name: str) -> list[dict[str, Any]]:
        stored = self.custom_objects_api.objects[(NAMESPACE, name)]
        return (stored.get("status") or {}).get("conditions") or []


class StubHealthProbe(HealthProbe):
    """Health probe returning a fixed result, or raising a fixed error."""

    def __init__(
        self, healthy: bool = True, error: Exception | None = None
    ) -> None:
        self.healthy = healthy
        self.error = error
        self.connections: list[Any] = []

    def check(self, connection: Any) -> bool:
        self.connections.append(connection)
        if self.error is not None:
            raise self.error
        return self.healthy


def new_toolchain_cluster(
    name: str, api_endpoint: str = "http://cluster.com"
) -> dict[str, Any]:
    manifest = f"""
apiVersion: toolchain.dev.openshift.com/v1alpha1
kind: ToolchainCluster
metadata:
  name: {name}
  namespace: {NAMESPACE}
  resourceVersion: "1"
  labels:
    type: member
    namespace: toolchain-member-operator
    ownerClusterName: host-cluster
spec:
  apiEndpoint: {api_endpoint}
  secretRef:
    name: {name}-secret
status: {{}}
"""
    return yaml.safe_load(manifest)


def new_secret(name: str, token: str = "mycooltoken") -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": name, "namespace": NAMESPACE},
        "data": {"token": base64.b64encode(token.encode()).decode()},
    }


def new_registry_entry(name: str) -> RegistryEntry:
    return RegistryEntry(
        name=name,
        connection=object(),
        role=ClusterRole.MEMBER,
        operator_namespace="toolchain-member-operator",
        owner_cluster_name="host-cluster",
    )


@pytest.fixture
def registry() -> ClusterRegistry:
    return ClusterRegistry()


@pytest.fixture(autouse=True)
def ca_bundle_dir(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Keep the CA bundle files written by the tests in a temporary
    directory.
    """
    path = tmp_path / "ca-bundles"
    monkeypatch.setattr(state, "ca_bundle_dir", str(path))
    return path
