"""Kopf handlers for the toolchain-cluster-operator."""

__all__ = (
    "check_cluster_health",
    "register_cluster",
    "start_operator",
    "unregister_cluster",
)

from toolchainclusteroperator.handlers.healthcheck import check_cluster_health
from toolchainclusteroperator.handlers.registration import (
    register_cluster,
    unregister_cluster,
)
from toolchainclusteroperator.startup import start_operator
