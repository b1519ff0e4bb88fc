"""
DTOs -- Pure domain data transfer objects for allocation and sequencing.

Responsibility:
    Defines the immutable structures that leave the kernel: catch views
    (CatchInfo), per-lot share results (LotShares), mutation results
    (StopToggleResult, TransferResult, CatchUpsertResult, RelotResult),
    lot date ranges (LotDateRange), expansion output (ExpandedCatch) and
    predecessor resolution (PredecessorResolution).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods are boundary converters, only invoked from
    the service and selector layers.

Invariants enforced:
    - Domain logic accepts/returns DTOs, never ORM entities.
    - Collections are tuples; DTOs are safe to share across threads.

Failure modes:
    - None.  DTO construction does not validate business rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from production_kernel.db.types import ZERO
from production_kernel.domain.values import CatchSpec

if TYPE_CHECKING:
    from production_kernel.models.quantity_sheet import QuantitySheet


@dataclass(frozen=True)
class CatchInfo:
    """Read-only view of one quantity-sheet row."""

    id: int
    project_id: int
    lot_no: str
    catch_no: str
    quantity: Decimal
    percentage_share: Decimal
    stopped: bool
    series_index: int
    assigned_processes: tuple[int, ...]
    exam_date: str | None
    exam_time: str | None
    paper_title: str | None
    paper_number: str | None
    language_ids: tuple[int, ...]
    pages: int
    status: int

    @classmethod
    def from_model(cls, model: QuantitySheet) -> CatchInfo:
        return cls(
            id=model.id,
            project_id=model.project_id,
            lot_no=model.lot_no,
            catch_no=model.catch_no,
            quantity=Decimal(model.quantity),
            percentage_share=Decimal(model.percentage_share),
            stopped=bool(model.stopped),
            series_index=model.series_index,
            assigned_processes=tuple(model.assigned_processes or ()),
            exam_date=model.exam_date,
            exam_time=model.exam_time,
            paper_title=model.paper_title,
            paper_number=model.paper_number,
            language_ids=tuple(model.language_ids or ()),
            pages=model.pages,
            status=model.status,
        )


@dataclass(frozen=True)
class CatchShare:
    """Share of one catch row after recomputation."""

    catch_id: int
    catch_no: str
    quantity: Decimal
    percentage_share: Decimal
    stopped: bool


@dataclass(frozen=True)
class LotShares:
    """
    Share state of one lot after a recompute.

    ``shares`` lists every row of the lot in id order; stopped rows carry
    their retained (stale) share.  ``active_share_total`` sums only
    non-stopped rows and is exactly 100 after a successful recompute.
    """

    project_id: int
    lot_no: str
    shares: tuple[CatchShare, ...]
    total_quantity: Decimal
    rounding_adjustment: Decimal = ZERO

    @property
    def active_share_total(self) -> Decimal:
        return sum(
            (s.percentage_share for s in self.shares if not s.stopped), ZERO
        )

    def share_of(self, catch_id: int) -> Decimal | None:
        for s in self.shares:
            if s.catch_id == catch_id:
                return s.percentage_share
        return None


@dataclass(frozen=True)
class StopToggleResult:
    """Outcome of toggle_stop."""

    catch_id: int
    project_id: int
    lot_no: str
    catch_no: str
    stopped: bool
    affected_catch_ids: tuple[int, ...]
    lot_shares: LotShares


@dataclass(frozen=True)
class TransferResult:
    """
    Outcome of transfer_catches.

    ``source_shares`` is None when the source lot was emptied by the move.
    """

    project_id: int
    source_lot: str
    target_lot: str
    moved_catch_ids: tuple[int, ...]
    moved_catch_nos: tuple[str, ...]
    work_transactions_updated: int
    source_shares: LotShares | None
    target_shares: LotShares



@dataclass(frozen=True)
class CatchUpsertResult:
    """
    Outcome of upsert_catches.

    ``created`` holds the new rows, ``updated`` the existing rows that were
    merged into; both reflect the shares after recomputation.
    """

    project_id: int
    created: tuple[CatchInfo, ...]
    updated: tuple[CatchInfo, ...]
    lot_shares: tuple[LotShares, ...]


@dataclass(frozen=True)
class RelotResult:
    """
    Outcome of relot_by_exam_date.

    ``lot_shares`` covers every recomputed lot: source lots that still have
    rows, then the new lot.
    """

    project_id: int
    new_lot_no: str
    source_lots: tuple[str, ...]
    moved_catch_ids: tuple[int, ...]
    work_transactions_updated: int
    lot_shares: tuple[LotShares, ...]

    def shares_for(self, lot_no: str) -> LotShares | None:
        for shares in self.lot_shares:
            if shares.lot_no == lot_no:
                return shares
        return None


@dataclass(frozen=True)
class LotDateRange:
    """First and last exam date of a lot; None when no date parses."""

    lot_no: str
    first_exam_date: str | None
    last_exam_date: str | None


@dataclass(frozen=True)
class ExpandedCatch:
    """
    One series variant produced by expansion.

    ``source_index`` is the 0-based position of the originating input catch;
    ``series_index`` is 1-based within the group.
    """

    catch: CatchSpec
    source_index: int
    series_index: int

    @property
    def catch_no(self) -> str:
        return self.catch.catch_no

    @property
    def lot_no(self) -> str:
        return self.catch.lot_no

    @property
    def quantity(self) -> Decimal:
        return self.catch.quantity


@dataclass(frozen=True)
class PredecessorResolution:
    """
    Result of resolving the process before ``current_process_id``.

    ``rule`` names the branch that produced the answer: ``override``,
    ``unknown_process``, ``independent``, ``dependent_walk``,
    ``sequence`` or ``none``.
    """

    project_id: int
    current_process_id: int
    process_id: int | None
    process_name: str | None
    rule: str
    configuration_warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def found(self) -> bool:
        return self.process_id is not None
