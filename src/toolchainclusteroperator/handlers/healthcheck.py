"""Kopf handler periodically checking the health of each ToolchainCluster."""

__all__ = ("check_cluster_health",)

from typing import Any

import kopf

from .. import state
from ..k8s import GROUP, PLURAL, VERSION
from ..reconciler import Reconciler


@kopf.timer(  # type: ignore[arg-type]
    GROUP, VERSION, PLURAL, interval=state.requeue_after
)
def check_cluster_health(
    *,
    namespace: str,
    name: str,
    memo: kopf.Memo,
    logger: Any,
    **kwargs: Any,
) -> None:
    """Check the health of a cluster and update its ToolchainCluster status.

    kopf runs this handler every ``state.requeue_after`` seconds for as long
    as the ToolchainCluster exists. Errors are left for kopf to retry with
    its backoff. A reconciliation asking to be requeued right away is turned
    into a `kopf.TemporaryError` without delay.

    Parameters
    ----------
    namespace : `str`
        The namespace of the ToolchainCluster.
    name : `str`
        The name of the ToolchainCluster.
    memo : `kopf.Memo`
        Operator state set up by `start_operator`.
    logger : `Any`
        The kopf logger.
    kwargs : `Any`
        Additional keyword arguments provided by kopf.
    """
    reconciler = Reconciler(
        k8s_client=memo.k8s_client,
        registry=memo.registry,
        requeue_after=state.requeue_after,
        request_timeout=state.request_timeout,
        health_probe=memo.health_probe,
        logger=logger,
    )
    result = reconciler.reconcile(namespace=namespace, name=name)
    if result.requeue:
        raise kopf.TemporaryError(
            f"Health check of cluster {name} asked to be requeued", delay=0
        )
    if result.requeue_after:
        logger.debug(
            f"Next health check of cluster {name} in "
            f"{result.requeue_after} seconds"
        )
    else:
        logger.info(f"Stopped checking the health of cluster {name}")
