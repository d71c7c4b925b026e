"""In-memory registry of connections to the remote clusters managed by the
operator.
"""

from __future__ import annotations

__all__ = ("ClusterRegistry", "ClusterRole", "RegistryEntry")

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ClusterRole(str, Enum):
    """Relationship of a remote cluster to the local one."""

    HOST = "host"
    MEMBER = "member"


@dataclass(frozen=True)
class RegistryEntry:
    """A cluster known to the operator, and how to reach it.

    Entries are immutable. Updating a cluster means adding a new entry with
    the same name.
    """

    name: str
    """Name of the cluster. Unique within a registry."""

    connection: Any
    """Client used to talk to the cluster, usually a
    `kubernetes.client.ApiClient`.
    """

    role: ClusterRole
    """Whether the cluster is a host or a member."""

    operator_namespace: str
    """Namespace the operator runs in on the remote cluster."""

    owner_cluster_name: str
    """Name the remote cluster uses to identify this cluster.

    If this entry describes a host (and thus its ToolchainCluster lives in a
    member), this is the name of the member as it is known in the host.
    """

    last_status: dict[str, Any] | None = None
    """Status as of the last health check, if any."""


class _ReadWriteLock:
    """Many readers or a single writer. Waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writers_waiting = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writing or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class ClusterRegistry:
    """Thread-safe store of `RegistryEntry` objects keyed by cluster name.

    Entries stay in the registry until they are explicitly deleted, so a
    missing entry means the cluster is not registered rather than a
    transient miss.
    """

    def __init__(self) -> None:
        self._lock = _ReadWriteLock()
        self._entries: dict[str, RegistryEntry] = {}

    def add_or_update(self, entry: RegistryEntry) -> None:
        """Add an entry, replacing any existing entry with the same name."""
        with self._lock.write():
            self._entries[entry.name] = entry

    def get(self, name: str) -> RegistryEntry | None:
        """Get the entry for a cluster, or `None` if it is not registered."""
        with self._lock.read():
            return self._entries.get(name)

    def get_first(self) -> RegistryEntry | None:
        """Get any one registered entry, or `None` if the registry is empty.

        Which entry is returned is unspecified.
        """
        with self._lock.read():
            return next(iter(self._entries.values()), None)

    def delete(self, name: str) -> None:
        """Remove the entry for a cluster. Unknown names are ignored."""
        with self._lock.write():
            self._entries.pop(name, None)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)
