"""
Tests for ProcessCatalogSnapshot and ProcessCatalogCache.

Covers:
- Deep immutability of snapshots
- Order indexes and lookups for unknown ids
- Duplicate sequence rejection
- Cache current / refresh / install / invalidate
"""

import threading
from dataclasses import FrozenInstanceError

import pytest

from production_kernel.domain.process_catalog import (
    ProcessCatalogCache,
    ProcessCatalogSnapshot,
    ProcessDefinition,
    ProcessKind,
    ProcessOrderEntry,
)


def _snapshot(version=None):
    return ProcessCatalogSnapshot.build(
        [
            ProcessDefinition(1, "Intake", ProcessKind.INDEPENDENT, range_end=3),
            ProcessDefinition(2, "Cutting", "Independent", range_end=3),
            ProcessDefinition(3, "Binding", ProcessKind.DEPENDENT),
        ],
        {7: [ProcessOrderEntry(3, 2), ProcessOrderEntry(1, 1)]},
        version=version,
    )


class TestSnapshotImmutability:
    """Snapshots cannot be mutated after build."""

    def test_processes_mapping_read_only(self):
        snapshot = _snapshot()
        with pytest.raises(TypeError):
            snapshot.processes[9] = ProcessDefinition(9, "X", ProcessKind.DEPENDENT)

    def test_orders_mapping_read_only(self):
        snapshot = _snapshot()
        with pytest.raises(TypeError):
            snapshot.orders[8] = ()

    def test_frozen_fields(self):
        snapshot = _snapshot()
        with pytest.raises(FrozenInstanceError):
            snapshot.version = 99

    def test_definition_frozen(self):
        definition = ProcessDefinition(1, "Intake", ProcessKind.INDEPENDENT)
        with pytest.raises(FrozenInstanceError):
            definition.name = "Other"


class TestSnapshotLookups:
    """Tests for order indexes."""

    def test_order_sorted_by_sequence(self):
        snapshot = _snapshot()
        assert [e.process_id for e in snapshot.order_for(7)] == [1, 3]

    def test_sequence_lookups(self):
        snapshot = _snapshot()
        assert snapshot.sequence_of(7, 3) == 2
        assert snapshot.process_at(7, 1) == 1
        assert snapshot.in_order(7, 1)
        assert not snapshot.in_order(7, 2)

    def test_unknown_ids_return_empty(self):
        snapshot = _snapshot()
        assert snapshot.process(99) is None
        assert snapshot.process(None) is None
        assert snapshot.order_for(42) == ()
        assert snapshot.sequence_of(42, 1) is None
        assert snapshot.process_at(7, 5) is None

    def test_kind_coerced_from_string(self):
        snapshot = _snapshot()
        assert snapshot.process(2).kind is ProcessKind.INDEPENDENT
        assert snapshot.process(3).is_dependent

    def test_feeders_in_id_order(self):
        snapshot = _snapshot()
        assert [p.id for p in snapshot.feeders_of(3)] == [1, 2]
        assert snapshot.feeders_of(1) == ()

    def test_duplicate_sequence_rejected(self):
        with pytest.raises(ValueError, match="Duplicate sequence"):
            ProcessCatalogSnapshot.build(
                [],
                {1: [ProcessOrderEntry(1, 1), ProcessOrderEntry(2, 1)]},
            )

    def test_versions_increase(self):
        first = _snapshot()
        second = _snapshot()
        assert second.version > first.version

    def test_explicit_version(self):
        assert _snapshot(version=5).version == 5
        assert ProcessCatalogSnapshot.empty().version == 0


class TestCatalogCache:
    """Tests for the snapshot holder."""

    def test_current_loads_lazily_once(self):
        calls = []

        def loader():
            calls.append(1)
            return _snapshot()

        cache = ProcessCatalogCache(loader)
        first = cache.current()
        second = cache.current()

        assert first is second
        assert len(calls) == 1

    def test_refresh_replaces_snapshot(self):
        cache = ProcessCatalogCache(_snapshot)
        old = cache.current()
        new = cache.refresh()

        assert new is not old
        assert cache.current() is new
        # Readers holding the old snapshot keep their view
        assert old.process(1).name == "Intake"

    def test_refresh_with_explicit_loader(self):
        cache = ProcessCatalogCache()
        empty = ProcessCatalogSnapshot.empty()
        assert cache.refresh(lambda: empty) is empty
        assert cache.current() is empty

    def test_no_loader_raises(self):
        cache = ProcessCatalogCache()
        with pytest.raises(RuntimeError):
            cache.current()

    def test_install_and_invalidate(self):
        calls = []

        def loader():
            calls.append(1)
            return _snapshot()

        cache = ProcessCatalogCache(loader)
        installed = ProcessCatalogSnapshot.empty()
        cache.install(installed)
        assert cache.current() is installed
        assert calls == []

        cache.invalidate()
        reloaded = cache.current()
        assert reloaded is not installed
        assert calls == [1]

    def test_concurrent_readers_see_complete_snapshots(self):
        cache = ProcessCatalogCache(_snapshot)
        cache.current()
        errors = []

        def reader():
            for _ in range(200):
                snapshot = cache.current()
                if snapshot.sequence_of(7, 3) != 2:
                    errors.append(snapshot.version)

        def refresher():
            for _ in range(50):
                cache.refresh()

        threads = [threading.Thread(target=reader) for _ in range(4)]
        threads.append(threading.Thread(target=refresher))
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
