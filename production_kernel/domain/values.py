"""
Values -- Immutable value objects for catch allocation.

Responsibility:
    Defines the input shape of a catch before it is persisted (CatchSpec)
    and the identity of a lot (LotKey).  Both are plain frozen dataclasses
    so they can be hashed, compared and passed across thread boundaries.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imports only production_kernel.db.types for precision constants.

Invariants enforced:
    - CatchSpec.quantity is always a finite Decimal at the stored precision
      (coerced in __post_init__).
    - language_ids is stored as a tuple so a CatchSpec stays hashable.
    - LotKey ordering is total: project id, then numeric lot value, then the
      raw label.  The lot lock registry relies on this order.

Failure modes:
    - InvalidQuantityError from __post_init__ on a non-numeric, NaN or
      infinite quantity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from functools import total_ordering

from production_kernel.db.types import to_quantity


@dataclass(frozen=True)
class CatchSpec:
    """
    A catch as submitted by a caller, before series expansion.

    Contract:
        ``lot_no`` may be blank here; the series engine rejects blank lots
        before producing any output.
    """

    catch_no: str
    lot_no: str
    quantity: Decimal
    exam_date: str | None = None
    exam_time: str | None = None
    paper_title: str | None = None
    paper_number: str | None = None
    language_ids: tuple[int, ...] = field(default_factory=tuple)
    pages: int = 0
    status: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "quantity", to_quantity(self.quantity, catch_no=self.catch_no)
        )
        if not isinstance(self.language_ids, tuple):
            object.__setattr__(self, "language_ids", tuple(self.language_ids))

    @property
    def has_lot(self) -> bool:
        return bool(self.lot_no and self.lot_no.strip())


def lot_sort_key(lot_no: str) -> tuple[int, int, str]:
    """
    Sort key for lot labels: numeric labels first in numeric order, then the
    rest by string.
    """
    stripped = lot_no.strip()
    if stripped.isdigit():
        return (0, int(stripped), stripped)
    return (1, 0, stripped)


@total_ordering
@dataclass(frozen=True)
class LotKey:
    """Identity of a lot: (project_id, lot_no)."""

    project_id: int
    lot_no: str

    def _order(self) -> tuple[int, tuple[int, int, str]]:
        return (self.project_id, lot_sort_key(self.lot_no))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, LotKey):
            return NotImplemented
        return self._order() < other._order()

    def __str__(self) -> str:
        return f"{self.project_id}/{self.lot_no}"
