"""Tests for the toolchainclusteroperator.registry module."""

from __future__ import annotations

import dataclasses
import random
import threading

from conftest import new_registry_entry

from toolchainclusteroperator.registry import (
    ClusterRegistry,
    ClusterRole,
    RegistryEntry,
)


def test_add_then_get(registry: ClusterRegistry) -> None:
    entry = new_registry_entry("member-1")

    registry.add_or_update(entry)

    assert registry.get("member-1") == entry
    assert registry.get("member-1") is entry


def test_get_unknown(registry: ClusterRegistry) -> None:
    assert registry.get("unknown") is None


def test_update_replaces_entry(registry: ClusterRegistry) -> None:
    entry = new_registry_entry("member-1")
    registry.add_or_update(entry)

    updated = dataclasses.replace(
        entry, role=ClusterRole.HOST, operator_namespace="toolchain-host"
    )
    registry.add_or_update(updated)

    assert registry.get("member-1") is updated
    assert len(registry) == 1


def test_delete(registry: ClusterRegistry) -> None:
    entry = new_registry_entry("member-1")
    registry.add_or_update(entry)

    registry.delete("member-1")

    assert registry.get("member-1") is None
    assert len(registry) == 0


def test_delete_unknown_is_noop(registry: ClusterRegistry) -> None:
    registry.add_or_update(new_registry_entry("member-1"))

    registry.delete("unknown")

    assert registry.get("member-1") is not None


def test_get_first(registry: ClusterRegistry) -> None:
    assert registry.get_first() is None

    entries = [new_registry_entry(f"member-{i}") for i in range(3)]
    for entry in entries:
        registry.add_or_update(entry)

    assert registry.get_first() in entries


def test_registries_are_independent() -> None:
    first = ClusterRegistry()
    second = ClusterRegistry()

    first.add_or_update(new_registry_entry("member-1"))

    assert second.get("member-1") is None


def test_entries_are_immutable() -> None:
    entry = new_registry_entry("member-1")
    try:
        entry.name = "other"  # type: ignore[misc]
    except dataclasses.FrozenInstanceError:
        pass
    else:
        raise AssertionError("RegistryEntry should be frozen")


def test_concurrent_access(registry: ClusterRegistry) -> None:
    """Entries read while other threads write are always whole entries."""
    names = [f"cluster-{i}" for i in range(8)]
    errors: list[str] = []
    start = threading.Barrier(12)

    def make_entry(name: str, generation: int) -> RegistryEntry:
        # Every field carries the generation so torn entries are detectable
        return RegistryEntry(
            name=name,
            connection=(name, generation),
            role=ClusterRole.MEMBER if generation % 2 else ClusterRole.HOST,
            operator_namespace=f"ns-{generation}",
            owner_cluster_name=f"owner-{generation}",
            last_status={"generation": generation},
        )

    def check(entry: RegistryEntry | None) -> None:
        if entry is None:
            return
        name, generation = entry.connection
        if entry != make_entry(name, generation):
            errors.append(f"inconsistent entry: {entry}")

    def writer(seed: int) -> None:
        rng = random.Random(seed)
        start.wait()
        for generation in range(500):
            name = rng.choice(names)
            if rng.random() < 0.2:
                registry.delete(name)
            else:
                registry.add_or_update(make_entry(name, generation))

    def reader(seed: int) -> None:
        rng = random.Random(seed)
        start.wait()
        for _ in range(1000):
            check(registry.get(rng.choice(names)))
            check(registry.get_first())

    threads = [
        threading.Thread(target=writer, args=(i,)) for i in range(4)
    ] + [threading.Thread(target=reader, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert not any(thread.is_alive() for thread in threads)
    assert errors == []
    for name in names:
        entry = registry.get(name)
        assert entry is None or entry.name == name
