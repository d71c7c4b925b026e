"""Status conditions describing the readiness of a ToolchainCluster."""

from __future__ import annotations

__all__ = (
    "CONDITION_READY",
    "REASON_CLUSTER_NOT_REACHABLE",
    "REASON_CLUSTER_NOT_READY",
    "REASON_CLUSTER_READY",
    "build_condition",
    "find_condition",
    "format_timestamp",
    "not_found_in_cache_message",
    "not_ready_condition",
    "offline_condition",
    "ready_condition",
    "set_condition",
)

from datetime import datetime, timezone
from typing import Any

CONDITION_READY = "Ready"

REASON_CLUSTER_READY = "ClusterReady"
REASON_CLUSTER_NOT_READY = "ClusterNotReady"
REASON_CLUSTER_NOT_REACHABLE = "ClusterNotReachable"

STATUS_TRUE = "True"
STATUS_FALSE = "False"


def not_found_in_cache_message(name: str) -> str:
    return f"cluster {name} not found in cache"


def ready_condition() -> dict[str, Any]:
    """Condition for a cluster whose health check succeeded."""
    return {
        "type": CONDITION_READY,
        "status": STATUS_TRUE,
        "reason": REASON_CLUSTER_READY,
        "message": "/healthz responded with ok",
    }


def not_ready_condition(error: BaseException | None = None) -> dict[str, Any]:
    """Condition for a cluster whose health check ran and failed.

    Parameters
    ----------
    error : `BaseException`, optional
        The error raised by the health check, if the cluster could not be
        reached at all.
    """
    if error is None:
        message = "/healthz responded without ok"
    else:
        message = f"cluster health check failed: {error}"
    return {
        "type": CONDITION_READY,
        "status": STATUS_FALSE,
        "reason": REASON_CLUSTER_NOT_READY,
        "message": message,
    }


def offline_condition(message: str) -> dict[str, Any]:
    """Condition for a cluster with no known connection."""
    return {
        "type": CONDITION_READY,
        "status": STATUS_FALSE,
        "reason": REASON_CLUSTER_NOT_REACHABLE,
        "message": message,
    }


def build_condition(
    *,
    name: str,
    found: bool,
    healthy: bool = False,
    error: BaseException | None = None,
) -> dict[str, Any]:
    """Map the outcome of a registry lookup and health check to the
    condition to persist.

    Parameters
    ----------
    name : `str`
        Name of the cluster.
    found : `bool`
        Whether the cluster was found in the registry.
    healthy : `bool`
        Result of the health check. Ignored if ``found`` is `False`.
    error : `BaseException`, optional
        Error raised by the health check, if any.

    Returns
    -------
    condition : `dict`
        A ``Ready``-type condition without ``lastTransitionTime``; see
        `set_condition`.
    """
    if not found:
        return offline_condition(not_found_in_cache_message(name))
    if healthy:
        return ready_condition()
    return not_ready_condition(error)


def find_condition(
    conditions: list[dict[str, Any]], condition_type: str
) -> dict[str, Any] | None:
    for condition in conditions:
        if condition.get("type") == condition_type:
            return condition
    return None


def format_timestamp(now: datetime) -> str:
    return now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def set_condition(
    conditions: list[dict[str, Any]] | None,
    condition: dict[str, Any],
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Return a copy of ``conditions`` with ``condition`` added, or replacing
    the existing condition of the same type.

    ``lastTransitionTime`` is set to ``now`` when the condition is new or
    its status changed. Otherwise the previous transition time is kept.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    existing = find_condition(conditions or [], condition["type"])
    new_condition = dict(condition)
    if existing is not None and existing.get("status") == condition["status"]:
        new_condition["lastTransitionTime"] = existing.get(
            "lastTransitionTime", format_timestamp(now)
        )
    else:
        new_condition["lastTransitionTime"] = format_timestamp(now)

    result = []
    replaced = False
    for item in conditions or []:
        if item.get("type") == condition["type"]:
            result.append(new_condition)
            replaced = True
        else:
            result.append(item)
    if not replaced:
        result.append(new_condition)
    return result
