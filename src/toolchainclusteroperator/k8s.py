"""Helpers for interacting with Kubernetes APIs."""

__all__ = (
    "GROUP",
    "PLURAL",
    "VERSION",
    "create_cluster_api_client",
    "create_k8sclient",
    "decode_secret_field",
    "delete_ca_bundle",
    "get_ca_bundle_path",
    "get_secret",
    "get_toolchain_cluster",
    "update_toolchain_cluster_status",
    "write_ca_bundle",
)

import base64
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import kubernetes

from toolchainclusteroperator import state

GROUP = "toolchain.dev.openshift.com"
VERSION = "v1alpha1"
PLURAL = "toolchainclusters"


def create_k8sclient() -> kubernetes.client:
    """Get a Kubernetes client configured with available cluster
    authentication.

    If in-cluster authentication is available, that is used. Otherwise
    this function falls-back to using a kubectl config file, which is
    appropriate for development.
    """
    try:
        kubernetes.config.load_incluster_config()
    except Exception:
        kubernetes.config.load_kube_config()
    return kubernetes.client


def create_cluster_api_client(
    *,
    name: str,
    api_endpoint: str,
    token: str,
    ca_bundle: str | None = None,
    insecure: bool = False,
) -> kubernetes.client.ApiClient:
    """Create an API client for a remote cluster.

    Parameters
    ----------
    name : `str`
        Name of the cluster. Used to name its CA bundle file.
    api_endpoint : `str`
        URL of the remote cluster's API server.
    token : `str`
        Bearer token used to authenticate with the remote cluster.
    ca_bundle : `str`, optional
        Base64-encoded PEM bundle of the CA certificates to trust. If not set,
        the system CA certificates are used.
    insecure : `bool`
        If `True`, TLS certificates are not verified.

    Returns
    -------
    api_client : `kubernetes.client.ApiClient`
        A client that is independent from the default client configuration.

    Notes
    -----
    The client only accepts a CA bundle as a file path, so the bundle is
    written to ``<state.ca_bundle_dir>/<name>.crt``. Registering the same
    cluster again overwrites that file; `delete_ca_bundle` removes it.
    """
    configuration = kubernetes.client.Configuration()
    configuration.host = api_endpoint
    configuration.api_key = {"authorization": token}
    configuration.api_key_prefix = {"authorization": "Bearer"}
    if insecure:
        configuration.verify_ssl = False
    if ca_bundle and not insecure:
        configuration.ssl_ca_cert = str(
            write_ca_bundle(name=name, ca_bundle=ca_bundle)
        )
    else:
        delete_ca_bundle(name)
    return kubernetes.client.ApiClient(configuration)


def get_ca_bundle_path(name: str) -> Path:
    return Path(state.ca_bundle_dir) / f"{name}.crt"


def write_ca_bundle(*, name: str, ca_bundle: str) -> Path:
    """Write the decoded CA bundle of a cluster, replacing any previous one.

    The file is replaced atomically, so clients still using the previous
    bundle never read a partially written file.
    """
    path = get_ca_bundle_path(name)
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w", dir=path.parent, suffix=".tmp", delete=False
    ) as ca_file:
        ca_file.write(decode_secret_field(ca_bundle))
    os.replace(ca_file.name, path)
    return path


def delete_ca_bundle(name: str) -> None:
    """Remove the CA bundle file of a cluster, if there is one."""
    get_ca_bundle_path(name).unlink(missing_ok=True)


def decode_secret_field(value: str) -> str:
    return base64.b64decode(value).decode("utf-8")


def get_secret(
    *,
    namespace: str,
    name: str,
    k8s_client: Any,
) -> dict[str, Any]:
    """Get a Secret resource as its raw Kubernetes manifest.

    Parameters
    ----------
    namespace : `str`
        The Kubernetes namespace of the Secret.
    name : `str`
        The name of the Secret.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).

    Returns
    -------
    secret : `dict`
        The Kubernetes Secret resource.
    """
    api = k8s_client.CoreV1Api()
    result = api.read_namespaced_secret(
        name=name, namespace=namespace, _preload_content=False
    )
    return json.loads(result.data)


def get_toolchain_cluster(
    *,
    namespace: str,
    name: str,
    k8s_client: Any,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Get a ToolchainCluster resource.

    Parameters
    ----------
    namespace : `str`
        The namespace of the ToolchainCluster.
    name : `str`
        The name of the ToolchainCluster.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    timeout : `float`, optional
        Request timeout, in seconds. No timeout if not set.

    Returns
    -------
    toolchaincluster : `dict`
        The ToolchainCluster resource.

    Raises
    ------
    kubernetes.client.exceptions.ApiException
        Raised if the resource cannot be read. The status is 404 if the
        resource does not exist.
    """
    api = k8s_client.CustomObjectsApi()
    return api.get_namespaced_custom_object(
        group=GROUP,
        version=VERSION,
        namespace=namespace,
        plural=PLURAL,
        name=name,
        _request_timeout=timeout,
    )


def update_toolchain_cluster_status(
    *,
    body: dict[str, Any],
    k8s_client: Any,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Replace the status subresource of a ToolchainCluster.

    The body's ``metadata.resourceVersion`` is sent along, so the update is
    rejected with a 409 if the resource changed since it was read.

    Parameters
    ----------
    body : `dict`
        The full ToolchainCluster resource, with the new ``status``.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    timeout : `float`, optional
        Request timeout, in seconds. No timeout if not set.

    Returns
    -------
    toolchaincluster : `dict`
        The updated ToolchainCluster resource.
    """
    api = k8s_client.CustomObjectsApi()
    return api.replace_namespaced_custom_object_status(
        group=GROUP,
        version=VERSION,
        namespace=body["metadata"]["namespace"],
        plural=PLURAL,
        name=body["metadata"]["name"],
        body=body,
        _request_timeout=timeout,
    )
