"""
Process catalog -- Immutable snapshot of processes and per-project ordering.

Responsibility:
    Holds everything the predecessor resolver reads: the process catalog
    (id, name, kind, range_start, range_end) and each project's ordered
    process list.  A snapshot is built once by the selector layer and then
    shared by any number of concurrent readers.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Snapshots are produced by ProcessSelector.load_catalog() and consumed by
    production_engines.sequencing.PreviousProcessResolver.

Invariants enforced:
    - Snapshots are deeply read-only: frozen dataclasses, tuples and
      MappingProxyType.  A reader never observes a partially built catalog.
    - ProcessCatalogCache swaps its snapshot reference in a single
      assignment; current() takes no lock.
    - Each snapshot carries a monotonically increasing version.

Failure modes:
    - ValueError from ProcessCatalogSnapshot.build() on duplicate sequence
      numbers within one project (the table constraint should prevent it).
    - RuntimeError from ProcessCatalogCache.current() when no snapshot has
      been installed and no loader is configured.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from production_kernel.models.process import Process as ProcessModel


class ProcessKind(str, Enum):
    """How a process derives its predecessor."""

    INDEPENDENT = "Independent"
    DEPENDENT = "Dependent"


@dataclass(frozen=True)
class ProcessDefinition:
    """One catalog entry."""

    id: int
    name: str
    kind: ProcessKind
    range_start: int | None = None
    range_end: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, ProcessKind):
            object.__setattr__(self, "kind", ProcessKind(self.kind))

    @property
    def is_dependent(self) -> bool:
        return self.kind == ProcessKind.DEPENDENT

    @classmethod
    def from_model(cls, model: ProcessModel) -> ProcessDefinition:
        return cls(
            id=model.id,
            name=model.name,
            kind=ProcessKind(model.kind),
            range_start=model.range_start,
            range_end=model.range_end,
        )


@dataclass(frozen=True)
class ProcessOrderEntry:
    """One slot of a project's process order."""

    process_id: int
    sequence: int


_EMPTY_ORDER: tuple[ProcessOrderEntry, ...] = ()
_version_counter = itertools.count(1)


@dataclass(frozen=True)
class ProcessCatalogSnapshot:
    """
    Read-only view of the process catalog at one point in time.

    Contract:
        Lookups never raise for unknown ids; they return None or an empty
        order so that the resolver degrades to "no predecessor".

    Guarantees:
        - ``processes`` and ``orders`` are MappingProxyType views over dicts
          private to the snapshot.
        - Each project's order is sorted by sequence.
    """

    processes: Mapping[int, ProcessDefinition]
    orders: Mapping[int, tuple[ProcessOrderEntry, ...]]
    version: int = 0
    _by_sequence: Mapping[int, Mapping[int, int]] = field(
        default_factory=lambda: MappingProxyType({}), repr=False, compare=False
    )
    _by_process: Mapping[int, Mapping[int, int]] = field(
        default_factory=lambda: MappingProxyType({}), repr=False, compare=False
    )

    @classmethod
    def build(
        cls,
        processes: Iterable[ProcessDefinition],
        orders: Mapping[int, Iterable[ProcessOrderEntry]],
        version: int | None = None,
    ) -> ProcessCatalogSnapshot:
        """
        Build a snapshot from catalog rows.

        Args:
            processes: All catalog processes.
            orders: project_id -> that project's order entries (any order).
            version: Explicit version; defaults to the next global counter.
        """
        process_map = {p.id: p for p in processes}

        order_map: dict[int, tuple[ProcessOrderEntry, ...]] = {}
        by_sequence: dict[int, Mapping[int, int]] = {}
        by_process: dict[int, Mapping[int, int]] = {}
        for project_id, entries in orders.items():
            ordered = tuple(sorted(entries, key=lambda e: e.sequence))
            seq_index: dict[int, int] = {}
            for entry in ordered:
                if entry.sequence in seq_index:
                    raise ValueError(
                        f"Duplicate sequence {entry.sequence} in project {project_id}"
                    )
                seq_index[entry.sequence] = entry.process_id
            order_map[project_id] = ordered
            by_sequence[project_id] = MappingProxyType(seq_index)
            by_process[project_id] = MappingProxyType(
                {e.process_id: e.sequence for e in ordered}
            )

        return cls(
            processes=MappingProxyType(process_map),
            orders=MappingProxyType(order_map),
            version=version if version is not None else next(_version_counter),
            _by_sequence=MappingProxyType(by_sequence),
            _by_process=MappingProxyType(by_process),
        )

    @classmethod
    def empty(cls) -> ProcessCatalogSnapshot:
        return cls.build((), {}, version=0)

    def process(self, process_id: int | None) -> ProcessDefinition | None:
        if process_id is None:
            return None
        return self.processes.get(process_id)

    def order_for(self, project_id: int) -> tuple[ProcessOrderEntry, ...]:
        return self.orders.get(project_id, _EMPTY_ORDER)

    def sequence_of(self, project_id: int, process_id: int) -> int | None:
        """Sequence number of a process in a project's order, or None."""
        return self._by_process.get(project_id, {}).get(process_id)

    def process_at(self, project_id: int, sequence: int) -> int | None:
        """Process id at a sequence slot, or None when the slot is empty."""
        return self._by_sequence.get(project_id, {}).get(sequence)

    def in_order(self, project_id: int, process_id: int) -> bool:
        return self.sequence_of(project_id, process_id) is not None

    def feeders_of(self, process_id: int) -> tuple[ProcessDefinition, ...]:
        """Processes whose range_end names process_id, in id order."""
        return tuple(
            p
            for _, p in sorted(self.processes.items())
            if p.range_end == process_id
        )


class ProcessCatalogCache:
    """
    Holder of the current catalog snapshot.

    Contract:
        ``current()`` returns the installed snapshot without locking.  When
        nothing is installed (first use or after ``invalidate()``) it loads
        one through the configured loader.

    Guarantees:
        - Concurrent refreshes are serialized; readers are never blocked.
        - A reader holding an old snapshot keeps a consistent view of it.

    Non-goals:
        - No time-based expiry.  Callers refresh after catalog edits.
    """

    def __init__(
        self,
        loader: Callable[[], ProcessCatalogSnapshot] | None = None,
    ):
        self._loader = loader
        self._snapshot: ProcessCatalogSnapshot | None = None
        self._refresh_lock = threading.Lock()

    def current(self) -> ProcessCatalogSnapshot:
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        return self.refresh()

    def refresh(
        self,
        loader: Callable[[], ProcessCatalogSnapshot] | None = None,
    ) -> ProcessCatalogSnapshot:
        """Load a new snapshot and install it."""
        load = loader or self._loader
        if load is None:
            raise RuntimeError("ProcessCatalogCache has no loader configured")
        with self._refresh_lock:
            snapshot = load()
            self._snapshot = snapshot
        return snapshot

    def install(self, snapshot: ProcessCatalogSnapshot) -> None:
        self._snapshot = snapshot

    def invalidate(self) -> None:
        self._snapshot = None
