"""Health checks for remote clusters."""

from __future__ import annotations

__all__ = ("ClusterUnreachableError", "HealthProbe", "KubernetesHealthProbe")

from abc import ABC, abstractmethod
from typing import Any

import structlog


class ClusterUnreachableError(Exception):
    """Raised when a cluster's health endpoint cannot be reached or answers
    with an error status.
    """


class HealthProbe(ABC):
    """Strategy for checking the health of a remote cluster."""

    @abstractmethod
    def check(self, connection: Any) -> bool:
        """Check the health of a cluster.

        Parameters
        ----------
        connection
            The ``connection`` of the cluster's `RegistryEntry`.

        Returns
        -------
        healthy : `bool`
            `True` if the cluster is healthy, `False` if it is reachable but
            reports itself as unhealthy.

        Raises
        ------
        Exception
            Raised if the cluster cannot be reached.
        """


class KubernetesHealthProbe(HealthProbe):
    """Check a cluster by calling the ``/healthz`` endpoint of its API server.

    Parameters
    ----------
    timeout : `float`
        Request timeout, in seconds.
    logger : optional
        Logger to use. If not provided, a default logger is used.
    """

    path = "/healthz"

    def __init__(self, timeout: float = 3.0, logger: Any | None = None):
        self.timeout = timeout
        if logger is None:
            logger = structlog.getLogger(__name__)
        self._logger = logger

    def check(self, connection: Any) -> bool:
        """Call ``/healthz`` through a `kubernetes.client.ApiClient`.

        A 2xx response with the body ``ok`` means the cluster is healthy. Any
        other 2xx body means it is reachable but unhealthy.

        Raises
        ------
        ClusterUnreachableError
            Raised for non-2xx responses, timeouts, and connection or
            protocol errors.
        """
        try:
            response = connection.call_api(
                self.path,
                "GET",
                auth_settings=["BearerToken"],
                response_type="str",
                _return_http_data_only=True,
                _preload_content=False,
                _request_timeout=self.timeout,
            )
            body = response.data.decode("utf-8")
        except Exception as e:
            raise ClusterUnreachableError(
                f"{self.path} request failed: {e}"
            ) from e

        if body.strip() != "ok":
            self._logger.info(f"{self.path} responded with {body!r}")
            return False
        return True
