"""
LotLockRegistry -- In-process critical sections per (project, lot).

Responsibility:
    Serializes every read-compute-write cycle on a lot within one process.
    Hands out one re-entrant lock per LotKey and acquires several keys in a
    fixed global order so that two-lot operations (transfers) cannot
    deadlock against each other.

Architecture position:
    Kernel > Services -- concurrency infrastructure.  Used by the
    ProductionCore facade, which holds the locks for the whole transaction
    (read -> compute -> write -> commit).  Cross-process safety comes from
    SELECT ... FOR UPDATE in QuantityAllocationService.

Invariants enforced:
    - Fixed acquisition order: keys are de-duplicated and sorted by
      LotKey ordering (project id, numeric lot value, raw label).
    - All-or-nothing: if any key times out, every lock taken so far is
      released before LotLockTimeoutError is raised.
    - Re-entrant: a thread already holding a lot may enter it again.
    - Bounded: a lot's lock is dropped once no thread holds or waits for it,
      so the registry only tracks lots that are in use.

Failure modes:
    - LotLockTimeoutError when a lock cannot be taken within the timeout.
"""

from __future__ import annotations

import threading
from collections.abc import Generator, Iterable
from contextlib import contextmanager

from production_kernel.domain.values import LotKey
from production_kernel.exceptions import LotLockTimeoutError
from production_kernel.logging_config import get_logger

logger = get_logger("services.lot_locks")

DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0


class _LotLock:
    """A lot's lock plus the number of threads holding or waiting for it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class LotLockRegistry:
    """
    Registry of per-lot re-entrant locks.

    Contract:
        ``hold(keys)`` is a context manager; the body runs with every
        requested lot locked.
    Guarantees:
        - Locks are created on first use and evicted when the last holder
          or waiter leaves.
        - The registry's own bookkeeping is guarded by a private lock that is
          never held while waiting for a lot.
    Non-goals:
        - No fairness guarantees beyond those of threading.RLock.
        - Does not coordinate across processes.
    """

    def __init__(self, timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self._timeout_seconds = timeout_seconds
        self._locks: dict[LotKey, _LotLock] = {}
        self._guard = threading.Lock()

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def tracked_lots(self) -> list[LotKey]:
        """Lots currently held or awaited, in acquisition order."""
        with self._guard:
            return sorted(self._locks)

    def _check_out(self, key: LotKey) -> _LotLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _LotLock()
                self._locks[key] = entry
            entry.users += 1
            return entry

    def _check_in(self, key: LotKey, entry: _LotLock) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @staticmethod
    def acquisition_order(keys: Iterable[LotKey]) -> list[LotKey]:
        """Distinct keys in the order they are locked."""
        return sorted(set(keys))

    @contextmanager
    def hold(
        self,
        keys: Iterable[LotKey],
        timeout_seconds: float | None = None,
    ) -> Generator[list[LotKey], None, None]:
        """
        Lock every key in fixed order for the duration of the block.

        Raises:
            LotLockTimeoutError: If any lot stays busy past the timeout.
        """
        timeout = self._timeout_seconds if timeout_seconds is None else timeout_seconds
        ordered = self.acquisition_order(keys)
        checked_out: list[tuple[LotKey, _LotLock]] = []
        acquired: list[_LotLock] = []
        try:
            for key in ordered:
                entry = self._check_out(key)
                checked_out.append((key, entry))
                if not entry.lock.acquire(timeout=timeout):
                    logger.warning("lot_lock_timeout", extra={
                        "project_id": key.project_id,
                        "lot_no": key.lot_no,
                        "timeout_seconds": timeout,
                    })
                    raise LotLockTimeoutError(key.project_id, key.lot_no, timeout)
                acquired.append(entry)
            logger.debug("lot_locks_acquired", extra={
                "lots": [str(k) for k in ordered],
            })
            yield ordered
        finally:
            for entry in reversed(acquired):
                entry.lock.release()
            for key, entry in reversed(checked_out):
                self._check_in(key, entry)
