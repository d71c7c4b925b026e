"""Kopf handlers keeping the cluster registry in sync with the
ToolchainCluster resources and their secrets.
"""

__all__ = (
    "create_registry_entry",
    "register_cluster",
    "unregister_cluster",
)

from typing import Any

import kopf
from kubernetes.client.exceptions import ApiException

from ..k8s import (
    GROUP,
    PLURAL,
    VERSION,
    create_cluster_api_client,
    decode_secret_field,
    delete_ca_bundle,
    get_secret,
)
from ..registry import ClusterRole, RegistryEntry

LABEL_TYPE = "type"
LABEL_NAMESPACE = "namespace"
LABEL_OWNER_CLUSTER_NAME = "ownerClusterName"


@kopf.on.resume(GROUP, VERSION, PLURAL)  # type: ignore[arg-type]
@kopf.on.create(GROUP, VERSION, PLURAL)  # type: ignore[arg-type]
@kopf.on.update(GROUP, VERSION, PLURAL)  # type: ignore[arg-type]
def register_cluster(
    *,
    spec: dict[str, Any],
    meta: dict[str, Any],
    namespace: str,
    name: str,
    memo: kopf.Memo,
    logger: Any,
    **kwargs: Any,
) -> None:
    """Add or refresh the registry entry of a ToolchainCluster.

    Parameters
    ----------
    spec : `dict`
        The ``spec`` field of the ToolchainCluster.
    meta : `dict`
        The ``metadata`` field of the ToolchainCluster.
    namespace : `str`
        The namespace of the ToolchainCluster, which is also where its secret
        is.
    name : `str`
        The name of the ToolchainCluster.
    memo : `kopf.Memo`
        Operator state set up by `start_operator`.
    logger : `Any`
        The kopf logger.
    kwargs : `Any`
        Additional keyword arguments provided by kopf.
    """
    try:
        secret_name = spec["secretRef"]["name"]
    except KeyError as e:
        raise kopf.PermanentError(
            f"ToolchainCluster {name} has no spec.secretRef.name"
        ) from e

    try:
        secret = get_secret(
            namespace=namespace, name=secret_name, k8s_client=memo.k8s_client
        )
    except ApiException as e:
        if e.status == 404:
            raise kopf.TemporaryError(
                f"Secret {secret_name} of cluster {name} does not exist",
                delay=10,
            ) from e
        raise

    entry = create_registry_entry(
        name=name, spec=spec, labels=meta.get("labels") or {}, secret=secret
    )
    memo.registry.add_or_update(entry)
    logger.info(
        f"Registered {entry.role.value} cluster {name} at "
        f"{spec['apiEndpoint']}"
    )


def create_registry_entry(
    *,
    name: str,
    spec: dict[str, Any],
    labels: dict[str, str],
    secret: dict[str, Any],
) -> RegistryEntry:
    """Create the registry entry of a ToolchainCluster.

    Parameters
    ----------
    name : `str`
        The name of the ToolchainCluster.
    spec : `dict`
        The ``spec`` field of the ToolchainCluster.
    labels : `dict`
        The labels of the ToolchainCluster. ``type`` is the role of the
        cluster (``member`` if not set), ``namespace`` the namespace of the
        operator in the cluster and ``ownerClusterName`` the name of this
        cluster as known by the remote one.
    secret : `dict`
        The Secret referenced by ``spec.secretRef``, with the bearer token
        stored under ``token``.

    Returns
    -------
    entry : `RegistryEntry`
        The registry entry, connected to ``spec.apiEndpoint``.
    """
    try:
        role = ClusterRole(labels.get(LABEL_TYPE) or ClusterRole.MEMBER.value)
    except ValueError as e:
        raise kopf.PermanentError(
            f"ToolchainCluster {name} has an unknown type "
            f"{labels[LABEL_TYPE]!r}"
        ) from e

    try:
        token = decode_secret_field(secret["data"]["token"])
    except KeyError as e:
        raise kopf.TemporaryError(
            f"Secret {secret['metadata']['name']} has no token", delay=10
        ) from e

    disabled_validations = spec.get("disabledTLSValidations") or []
    connection = create_cluster_api_client(
        name=name,
        api_endpoint=spec["apiEndpoint"],
        token=token,
        ca_bundle=spec.get("caBundle"),
        insecure="*" in disabled_validations,
    )

    return RegistryEntry(
        name=name,
        connection=connection,
        role=role,
        operator_namespace=labels.get(LABEL_NAMESPACE, ""),
        owner_cluster_name=labels.get(LABEL_OWNER_CLUSTER_NAME, ""),
    )


@kopf.on.delete(GROUP, VERSION, PLURAL, optional=True)  # type: ignore[arg-type]
def unregister_cluster(
    *,
    name: str,
    memo: kopf.Memo,
    logger: Any,
    **kwargs: Any,
) -> None:
    """Remove the registry entry and the CA bundle file of a deleted
    ToolchainCluster.
    """
    memo.registry.delete(name)
    delete_ca_bundle(name)
    logger.info(f"Unregistered cluster {name}")
