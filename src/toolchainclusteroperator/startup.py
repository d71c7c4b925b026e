"""Code intended to run on start-up, before running any handlers."""

__all__ = ("start_operator",)

from typing import Any

import kopf

from toolchainclusteroperator import state
from toolchainclusteroperator.healthprobe import KubernetesHealthProbe
from toolchainclusteroperator.k8s import create_k8sclient
from toolchainclusteroperator.registry import ClusterRegistry


@kopf.on.startup()
def start_operator(*, memo: kopf.Memo, logger: Any, **kwargs: Any) -> None:
    """Set up the state shared by all handlers.

    The registry, the Kubernetes client and the health probe are stored in
    kopf's ``memo``, which is passed to every handler.
    """
    memo.registry = ClusterRegistry()
    memo.k8s_client = create_k8sclient()
    memo.health_probe = KubernetesHealthProbe(
        timeout=state.health_check_timeout
    )
    logger.info(
        f"Checking cluster health every {state.requeue_after} seconds"
    )
