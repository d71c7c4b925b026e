"""Reconciliation of the readiness status of a ToolchainCluster."""

from __future__ import annotations

__all__ = (
    "ClusterNotFoundInCacheError",
    "ReconcileError",
    "ReconcileResult",
    "Reconciler",
    "StatusUpdateError",
)

import copy
from dataclasses import dataclass
from typing import Any

import structlog
from kubernetes.client.exceptions import ApiException

from toolchainclusteroperator.conditions import (
    build_condition,
    not_found_in_cache_message,
    set_condition,
)
from toolchainclusteroperator.healthprobe import (
    HealthProbe,
    KubernetesHealthProbe,
)
from toolchainclusteroperator.k8s import (
    get_toolchain_cluster,
    update_toolchain_cluster_status,
)
from toolchainclusteroperator.registry import ClusterRegistry


class ReconcileError(Exception):
    """Base class for errors raised by `Reconciler.reconcile`."""


class ClusterNotFoundInCacheError(ReconcileError):
    """Raised when a ToolchainCluster has no entry in the cluster registry."""

    def __init__(self, name: str) -> None:
        super().__init__(not_found_in_cache_message(name))
        self.name = name


class StatusUpdateError(ReconcileError):
    """Raised when the status of a ToolchainCluster could not be written."""

    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(
            f"failed to update the status of cluster - {name}: {cause}"
        )
        self.name = name
        self.cause = cause


@dataclass(frozen=True)
class ReconcileResult:
    """What the scheduler should do after a successful reconciliation."""

    requeue: bool = False
    """Whether to reconcile again immediately."""

    requeue_after: float = 0
    """Seconds after which to reconcile again; ``0`` means never."""


class Reconciler:
    """Check the health of a registered cluster and record it in the status
    of its ToolchainCluster resource.

    Parameters
    ----------
    k8s_client
        A Kubernetes client for the cluster hosting the ToolchainCluster
        resources (see `toolchainclusteroperator.k8s.create_k8sclient`).
    registry : `ClusterRegistry`
        Registry of connections to the remote clusters.
    requeue_after : `float`
        Seconds between health checks of a cluster.
    request_timeout : `float`, optional
        Timeout, in seconds, of the requests reading and updating the
        ToolchainCluster. No timeout if not set.
    health_probe : `HealthProbe`, optional
        Health check strategy. Defaults to `KubernetesHealthProbe`.
    logger : optional
        Logger to use. If not provided, a default logger is used.
    """

    def __init__(
        self,
        *,
        k8s_client: Any,
        registry: ClusterRegistry,
        requeue_after: float,
        request_timeout: float | None = None,
        health_probe: HealthProbe | None = None,
        logger: Any | None = None,
    ) -> None:
        self.k8s_client = k8s_client
        self.registry = registry
        self.requeue_after = requeue_after
        self.request_timeout = request_timeout
        if health_probe is None:
            health_probe = KubernetesHealthProbe()
        self.health_probe = health_probe
        if logger is None:
            logger = structlog.getLogger(__name__)
        self.logger = logger

    def reconcile(self, *, namespace: str, name: str) -> ReconcileResult:
        """Reconcile the ToolchainCluster with the given name.

        Returns
        -------
        result : `ReconcileResult`
            Empty if the ToolchainCluster no longer exists. Otherwise asks
            to be requeued after ``requeue_after`` seconds.

        Raises
        ------
        ClusterNotFoundInCacheError
            Raised if the cluster is not in the registry. The status is set
            to offline on a best-effort basis first.
        StatusUpdateError
            Raised if the status could not be written after a health check.
        Exception
            Any error reading the ToolchainCluster, other than a 404, is
            re-raised as is.
        """
        try:
            toolchain_cluster = get_toolchain_cluster(
                namespace=namespace,
                name=name,
                k8s_client=self.k8s_client,
                timeout=self.request_timeout,
            )
        except ApiException as e:
            if e.status == 404:
                self.logger.info(
                    f"ToolchainCluster {namespace}/{name} not found; "
                    "it was probably deleted."
                )
                return ReconcileResult()
            raise

        entry = self.registry.get(name)
        if entry is None:
            error = ClusterNotFoundInCacheError(name)
            condition = build_condition(name=name, found=False)
            try:
                self.update_status(toolchain_cluster, condition)
            except Exception:
                self.logger.exception(
                    f"Failed to set the status of cluster {name} to offline"
                )
            raise error

        probe_error: Exception | None = None
        try:
            healthy = self.health_probe.check(entry.connection)
        except Exception as e:
            self.logger.warning(f"Health check of cluster {name} failed: {e}")
            healthy = False
            probe_error = e

        condition = build_condition(
            name=name, found=True, healthy=healthy, error=probe_error
        )
        try:
            self.update_status(toolchain_cluster, condition)
        except Exception as e:
            raise StatusUpdateError(name, e) from e

        return ReconcileResult(requeue_after=self.requeue_after)

    def update_status(
        self, toolchain_cluster: dict[str, Any], condition: dict[str, Any]
    ) -> dict[str, Any]:
        """Write ``condition`` into the status of a ToolchainCluster."""
        body = copy.deepcopy(toolchain_cluster)
        status = body.get("status") or {}
        status["conditions"] = set_condition(
            status.get("conditions"), condition
        )
        body["status"] = status
        return update_toolchain_cluster_status(
            body=body,
            k8s_client=self.k8s_client,
            timeout=self.request_timeout,
        )
