"""
QuantityAllocationService -- Quantity and percentage-share bookkeeping per lot.

Responsibility:
    Owns every mutation of quantity-sheet rows that can change a lot's
    percentage shares: bulk creation with series expansion, merge-by-catch
    upsert, quantity edits, stop/unstop, cross-lot transfer, re-lotting by
    exam date, deletion, and the recompute that restores the share
    invariant after each of them.  Also releases lots.

Architecture position:
    Kernel > Services -- imperative shell.  Delegates arithmetic to the pure
    engines (production_engines.shares, production_engines.series) and
    persists the results through the caller's session.

Invariants enforced:
    - Share invariant: after any successful call that touches a lot, the
      percentage_share values of that lot's non-stopped rows sum to exactly
      100.  A mutation that would leave a lot with rows but zero active
      quantity raises ZeroQuantityLotError, and the caller rolls back.
    - Stopped rows keep their last computed share.
    - Catch identity: a lot holds at most one group of rows per catch
      number.  Creation and moves that would break this raise
      DuplicateCatchError before any write.
    - Row locks: every lot is read with SELECT ... FOR UPDATE before its
      shares are recomputed.  Two-lot operations lock lots in LotKey order.
    - Flush only: this service never commits or rolls back.

Failure modes:
    - ValidationError subclasses on malformed input, raised before any row
      is touched.
    - CatchNotFoundError / LotNotFoundError / ProjectNotFoundError on
      missing references.
    - ZeroQuantityLotError from recomputation.

Audit relevance:
    Every mutation logs a snake_case event (shares_recomputed,
    catches_added, catches_upserted, catch_quantity_updated,
    catch_stop_toggled, catches_transferred, catches_relotted,
    catch_deleted, lot_deleted, lot_released) with the project, lot and
    affected row ids.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from production_engines.series import SeriesExpansion, expand_for_series
from production_engines.shares import ShareComputation, ShareLine, compute_shares
from production_kernel.db.types import ZERO, to_quantity
from production_kernel.domain.dtos import (
    CatchInfo,
    CatchShare,
    CatchUpsertResult,
    ExpandedCatch,
    LotShares,
    RelotResult,
    StopToggleResult,
    TransferResult,
)
from production_kernel.domain.exam_dates import (
    STORED_DATE_FORMAT,
    TRANSFER_DATE_FORMAT,
    parse_exam_date_range,
    parse_stored_date,
    to_stored_date,
)
from production_kernel.domain.values import CatchSpec, LotKey
from production_kernel.exceptions import (
    CatchNotFoundError,
    DuplicateCatchError,
    EmptyCatchSetError,
    InvalidLotNumberError,
    InvalidQuantityError,
    LotNotFoundError,
    MissingLotNumberError,
    NoCatchesInRangeError,
    ProjectNotFoundError,
    SameLotTransferError,
)
from production_kernel.logging_config import get_logger
from production_kernel.models.project import Project, ProjectType
from production_kernel.models.quantity_sheet import RELEASED_STATUS, QuantitySheet
from production_kernel.models.work_transaction import WorkTransaction
from production_kernel.services.base import BaseService
from production_kernel.services.process_assignment import (
    CatchProcessAssigner,
    ProjectSequenceAssigner,
)

logger = get_logger("services.quantity_allocation")


class QuantityAllocationService(BaseService[QuantitySheet]):
    """
    Lot-level allocation service.

    Contract:
        All public methods run inside the caller's transaction.  On any
        exception the caller must roll back; partial flushes are expected.
    Guarantees:
        - Validation errors are raised before the first write.
        - Recomputation always covers the whole lot, never a subset.
    Non-goals:
        - In-process serialization; see LotLockRegistry and ProductionCore.
        - Deciding assigned processes; delegated to a CatchProcessAssigner.
    """

    def __init__(
        self,
        session: Session,
        assigner: CatchProcessAssigner | None = None,
        booklet_type_name: str = ProjectType.BOOKLET.value,
        transfer_date_format: str = TRANSFER_DATE_FORMAT,
        stored_date_format: str = STORED_DATE_FORMAT,
    ):
        super().__init__(session)
        self._assigner = assigner or ProjectSequenceAssigner(session)
        self._booklet_type_name = booklet_type_name
        self._transfer_date_format = transfer_date_format
        self._stored_date_format = stored_date_format

    # -- lookups -----------------------------------------------------------

    def _lock_lot_rows(self, project_id: int, lot_no: str) -> list[QuantitySheet]:
        return list(
            self.session.scalars(
                select(QuantitySheet)
                .where(
                    QuantitySheet.project_id == project_id,
                    QuantitySheet.lot_no == lot_no,
                )
                .order_by(QuantitySheet.id)
                .with_for_update()
            )
        )

    def _lock_catch(self, catch_id: int) -> QuantitySheet:
        row = self.session.scalars(
            select(QuantitySheet)
            .where(QuantitySheet.id == catch_id)
            .with_for_update()
        ).one_or_none()
        if row is None:
            raise CatchNotFoundError(str(catch_id))
        return row

    def _get_project(self, project_id: int) -> Project:
        project = self.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def _is_booklet(self, project: Project) -> bool:
        return project.project_type == self._booklet_type_name

    def _series_count_for(self, project: Project) -> int:
        if self._is_booklet(project) and project.series_count > 1:
            return project.series_count
        return 1

    # -- recompute ---------------------------------------------------------

    def recompute_shares(self, project_id: int, lot_no: str) -> LotShares:
        """
        Recompute percentage shares for every active row of a lot.

        Preconditions:
            - The caller holds the lot's in-process lock when running
              concurrently.
        Postconditions:
            - Active shares sum to 100; stopped rows are untouched.

        Raises:
            ZeroQuantityLotError: The lot has no active quantity.  Nothing
                is written.
        """
        rows = self._lock_lot_rows(project_id, lot_no)
        active = [row for row in rows if not row.stopped]

        computation = compute_shares(
            [ShareLine(line_id=row.id, quantity=Decimal(row.quantity)) for row in active],
            project_id=project_id,
            lot_no=lot_no,
        )

        shares = computation.shares_by_id()
        for row in active:
            row.percentage_share = shares[row.id]
        self.session.flush()

        logger.info("shares_recomputed", extra={
            "project_id": project_id,
            "lot_no": lot_no,
            "row_count": len(rows),
            "active_count": len(active),
            "total_quantity": str(computation.total_quantity),
            "rounding_adjustment": str(computation.rounding_adjustment),
        })

        return self._lot_shares(project_id, lot_no, rows, computation)

    @staticmethod
    def _lot_shares(
        project_id: int,
        lot_no: str,
        rows: Sequence[QuantitySheet],
        computation: ShareComputation,
    ) -> LotShares:
        return LotShares(
            project_id=project_id,
            lot_no=lot_no,
            shares=tuple(
                CatchShare(
                    catch_id=row.id,
                    catch_no=row.catch_no,
                    quantity=Decimal(row.quantity),
                    percentage_share=Decimal(row.percentage_share),
                    stopped=bool(row.stopped),
                )
                for row in rows
            ),
            total_quantity=computation.total_quantity,
            rounding_adjustment=computation.rounding_adjustment,
        )

    # -- catch identity ----------------------------------------------------

    @staticmethod
    def _catch_nos_by_lot(catches: Sequence[CatchSpec]) -> dict[str, list[str]]:
        by_lot: dict[str, list[str]] = {}
        for catch in catches:
            by_lot.setdefault(catch.lot_no.strip(), []).append(catch.catch_no)
        return by_lot

    @staticmethod
    def _reject_duplicate_input(project_id: int, catches: Sequence[CatchSpec]) -> None:
        seen: set[tuple[str, str]] = set()
        for catch in catches:
            key = (catch.lot_no.strip(), catch.catch_no)
            if key in seen:
                raise DuplicateCatchError(project_id, key[0], catch.catch_no)
            seen.add(key)

    @staticmethod
    def _reject_existing(
        project_id: int,
        lot_no: str,
        catch_nos: Sequence[str],
        lot_rows: Sequence[QuantitySheet],
    ) -> None:
        """Raise if any catch number already has rows in the lot."""
        present = {row.catch_no for row in lot_rows}
        for catch_no in catch_nos:
            if catch_no in present:
                logger.warning("duplicate_catch_rejected", extra={
                    "project_id": project_id,
                    "lot_no": lot_no,
                    "catch_no": catch_no,
                })
                raise DuplicateCatchError(project_id, lot_no, catch_no)

    # -- creation ----------------------------------------------------------

    def _stage_row(self, project: Project, expanded: ExpandedCatch) -> QuantitySheet:
        spec = expanded.catch
        return QuantitySheet(
            project_id=project.id,
            lot_no=spec.lot_no.strip(),
            catch_no=spec.catch_no,
            quantity=spec.quantity,
            percentage_share=ZERO,
            stopped=False,
            series_index=expanded.series_index,
            assigned_processes=self._assigner.assign(project, spec),
            exam_date=spec.exam_date,
            exam_time=spec.exam_time,
            paper_title=spec.paper_title,
            paper_number=spec.paper_number,
            language_ids=list(spec.language_ids),
            pages=spec.pages,
            status=spec.status,
        )

    def expand_for_series(
        self,
        project_id: int,
        catches: Sequence[CatchSpec],
        should_cancel: Callable[[], bool] | None = None,
    ) -> SeriesExpansion:
        """
        Expand catches according to the project's type and series count.

        Only Booklet projects with series_count > 1 are split; every other
        project gets a one-to-one copy.
        """
        project = self._get_project(project_id)
        return expand_for_series(
            catches,
            self._series_count_for(project),
            should_cancel=should_cancel,
        )

    def add_catches(
        self,
        project_id: int,
        catches: Sequence[CatchSpec],
        should_cancel: Callable[[], bool] | None = None,
    ) -> tuple[CatchInfo, ...]:
        """
        Create catch rows, expanding booklet series, then recompute every
        touched lot.

        A lot holds at most one group of rows per catch number, so a catch
        number that repeats within the input or already has rows in its lot
        is rejected.  upsert_catches() merges instead.

        All rows are staged in memory and added in a single flush.

        Raises:
            EmptyCatchSetError, ProjectNotFoundError, MissingLotNumberError,
            InvalidQuantityError, DuplicateCatchError, AllocationCancelledError,
            ZeroQuantityLotError.
        """
        if not catches:
            raise EmptyCatchSetError("add_catches")

        project = self._get_project(project_id)
        expansion = expand_for_series(
            catches,
            self._series_count_for(project),
            should_cancel=should_cancel,
        )

        self._reject_duplicate_input(project_id, catches)
        for lot_no, catch_nos in self._catch_nos_by_lot(catches).items():
            self._reject_existing(
                project_id, lot_no, catch_nos, self._lock_lot_rows(project_id, lot_no)
            )

        staged = [self._stage_row(project, expanded) for expanded in expansion]

        self.session.add_all(staged)
        self.session.flush()

        touched = sorted({LotKey(project_id, row.lot_no) for row in staged})
        for key in touched:
            self.recompute_shares(key.project_id, key.lot_no)

        logger.info("catches_added", extra={
            "project_id": project_id,
            "submitted_count": len(catches),
            "row_count": len(staged),
            "series_count": expansion.series_count,
            "lots": [k.lot_no for k in touched],
        })

        return tuple(CatchInfo.from_model(row) for row in staged)

    # -- edits -------------------------------------------------------------

    def update_catch_quantity(
        self,
        catch_id: int,
        quantity: Decimal | int | str,
    ) -> LotShares:
        """
        Change the quantity of a catch and recompute its lot.

        For booklet projects ``quantity`` is the catch total and is divided
        across every active series variant sharing the catch number; for
        other projects it is set on the single row.

        Raises:
            CatchNotFoundError, InvalidQuantityError, ZeroQuantityLotError.
        """
        row = self._lock_catch(catch_id)
        new_quantity = to_quantity(quantity, catch_no=row.catch_no)
        if new_quantity < ZERO:
            raise InvalidQuantityError(row.catch_no, str(new_quantity))

        project = self._get_project(row.project_id)
        lot_rows = self._lock_lot_rows(row.project_id, row.lot_no)

        if self._is_booklet(project):
            variants = [
                r for r in lot_rows if r.catch_no == row.catch_no and not r.stopped
            ] or [row]
            split = expand_for_series(
                [CatchSpec(catch_no=row.catch_no, lot_no=row.lot_no, quantity=new_quantity)],
                len(variants),
            )
            for variant, expanded in zip(variants, split):
                variant.quantity = expanded.quantity
            updated_ids = [v.id for v in variants]
        else:
            row.quantity = new_quantity
            updated_ids = [row.id]

        self.session.flush()
        shares = self.recompute_shares(row.project_id, row.lot_no)

        logger.info("catch_quantity_updated", extra={
            "catch_id": catch_id,
            "project_id": row.project_id,
            "lot_no": row.lot_no,
            "catch_no": row.catch_no,
            "quantity": str(new_quantity),
            "updated_catch_ids": updated_ids,
        })
        return shares

    def toggle_stop(self, catch_id: int) -> StopToggleResult:
        """
        Flip the stopped flag of every row of a catch and recompute its lot.

        The new value is the negation of the target row's value and is
        applied to every row with the same project, lot and catch number.

        Raises:
            CatchNotFoundError: Unknown catch id.
            ZeroQuantityLotError: The toggle would leave the lot with no
                active quantity.
        """
        target = self._lock_catch(catch_id)
        project_id, lot_no, catch_no = target.project_id, target.lot_no, target.catch_no
        new_value = not target.stopped

        group = [
            row for row in self._lock_lot_rows(project_id, lot_no)
            if row.catch_no == catch_no
        ]
        for row in group:
            row.stopped = new_value
        self.session.flush()

        shares = self.recompute_shares(project_id, lot_no)

        affected = tuple(row.id for row in group)
        logger.info("catch_stop_toggled", extra={
            "catch_id": catch_id,
            "project_id": project_id,
            "lot_no": lot_no,
            "catch_no": catch_no,
            "stopped": new_value,
            "affected_catch_ids": affected,
        })

        return StopToggleResult(
            catch_id=catch_id,
            project_id=project_id,
            lot_no=lot_no,
            catch_no=catch_no,
            stopped=new_value,
            affected_catch_ids=affected,
            lot_shares=shares,
        )

    # -- transfer ----------------------------------------------------------

    def transfer_catches(
        self,
        project_id: int,
        source_lot: str,
        target_lot: str,
        catch_nos: Sequence[str],
        new_exam_date: str | None = None,
    ) -> TransferResult:
        """
        Move every row of the given catch numbers from one lot to another.

        Validation happens first; then rows move, work transactions that
        still carry the source lot are rewritten, and both lots are
        recomputed.  A source lot left without rows is not recomputed.

        Args:
            new_exam_date: Optional date in the external transfer format;
                stored in ISO form on every moved row.

        Raises:
            MissingLotNumberError: Blank source or target lot.
            EmptyCatchSetError: No catch numbers.
            SameLotTransferError: Source equals target.
            InvalidExamDateError: Unparsable new_exam_date.
            CatchNotFoundError: A catch number has no row in the source lot.
            DuplicateCatchError: A catch number already has rows in the
                target lot.
            ZeroQuantityLotError: Either lot would be left with rows but no
                active quantity.
        """
        source = (source_lot or "").strip()
        target = (target_lot or "").strip()
        if not source or not target:
            raise MissingLotNumberError()
        wanted = list(dict.fromkeys(c.strip() for c in catch_nos if c and c.strip()))
        if not wanted:
            raise EmptyCatchSetError("transfer_catches")
        if source == target:
            raise SameLotTransferError(source)
        stored_date = None
        if new_exam_date is not None:
            stored_date = to_stored_date(
                new_exam_date, self._transfer_date_format, self._stored_date_format
            )

        locked: dict[str, list[QuantitySheet]] = {}
        for key in sorted((LotKey(project_id, source), LotKey(project_id, target))):
            locked[key.lot_no] = self._lock_lot_rows(project_id, key.lot_no)

        wanted_set = set(wanted)
        moving = [row for row in locked[source] if row.catch_no in wanted_set]
        found = {row.catch_no for row in moving}
        missing = [c for c in wanted if c not in found]
        if missing:
            logger.warning("transfer_catch_not_found", extra={
                "project_id": project_id,
                "source_lot": source,
                "missing_catch_nos": missing,
            })
            raise CatchNotFoundError(missing[0], lot_no=source)
        self._reject_existing(project_id, target, wanted, locked[target])

        moved_ids = [row.id for row in moving]
        for row in moving:
            row.lot_no = target
            if stored_date is not None:
                row.exam_date = stored_date
        self.session.flush()

        result = self.session.execute(
            update(WorkTransaction)
            .where(
                WorkTransaction.quantity_sheet_id.in_(moved_ids),
                WorkTransaction.lot_no == source,
            )
            .values(lot_no=target)
            .execution_options(synchronize_session="fetch")
        )
        work_updated = result.rowcount or 0

        moved_set = set(moved_ids)
        remaining = [row for row in locked[source] if row.id not in moved_set]
        source_shares = None
        if remaining:
            source_shares = self.recompute_shares(project_id, source)
        target_shares = self.recompute_shares(project_id, target)

        logger.info("catches_transferred", extra={
            "project_id": project_id,
            "source_lot": source,
            "target_lot": target,
            "catch_nos": wanted,
            "moved_catch_ids": moved_ids,
            "work_transactions_updated": work_updated,
            "exam_date": stored_date,
            "source_emptied": not remaining,
        })

        return TransferResult(
            project_id=project_id,
            source_lot=source,
            target_lot=target,
            moved_catch_ids=tuple(moved_ids),
            moved_catch_nos=tuple(wanted),
            work_transactions_updated=work_updated,
            source_shares=source_shares,
            target_shares=target_shares,
        )

    # -- upsert ------------------------------------------------------------

    @staticmethod
    def _merge_fields(row: QuantitySheet, spec: CatchSpec) -> None:
        """Copy the populated descriptive fields of spec onto row."""
        for name in ("paper_title", "paper_number", "exam_date", "exam_time"):
            value = getattr(spec, name)
            if value is not None and value.strip():
                setattr(row, name, value)
        if spec.pages > 0:
            row.pages = spec.pages
        if spec.language_ids:
            row.language_ids = list(spec.language_ids)
        if spec.status != 0:
            row.status = spec.status

    @staticmethod
    def _merge_quantity(spec: CatchSpec, active: Sequence[QuantitySheet]) -> None:
        # Zero means "keep the current quantity"
        if spec.quantity <= ZERO:
            return
        split = expand_for_series(
            [CatchSpec(catch_no=spec.catch_no, lot_no=spec.lot_no, quantity=spec.quantity)],
            len(active),
        )
        for row, expanded in zip(active, split):
            row.quantity = expanded.quantity

    def upsert_catches(
        self,
        project_id: int,
        catches: Sequence[CatchSpec],
        should_cancel: Callable[[], bool] | None = None,
    ) -> CatchUpsertResult:
        """
        Merge catches into their lots by catch number, creating the missing
        ones, then recompute every touched lot.

        A catch number with active rows in its lot is merged: populated
        descriptive fields overwrite the stored ones, and a positive
        quantity replaces the catch total, re-split across the active
        series variants.  A catch number with no rows is created exactly as
        add_catches() would.

        Raises:
            EmptyCatchSetError, ProjectNotFoundError, MissingLotNumberError,
            InvalidQuantityError, AllocationCancelledError,
            ZeroQuantityLotError.
            DuplicateCatchError: The input repeats a catch number within a
                lot, or the catch number only has stopped rows.
        """
        if not catches:
            raise EmptyCatchSetError("upsert_catches")

        project = self._get_project(project_id)
        expansion = expand_for_series(
            catches,
            self._series_count_for(project),
            should_cancel=should_cancel,
        )
        self._reject_duplicate_input(project_id, catches)

        touched = sorted(
            {LotKey(project_id, lot_no) for lot_no in self._catch_nos_by_lot(catches)}
        )
        lot_rows = {
            key.lot_no: self._lock_lot_rows(project_id, key.lot_no) for key in touched
        }

        plan: list[tuple[int, CatchSpec, list[QuantitySheet]]] = []
        for index, spec in enumerate(catches):
            lot_no = spec.lot_no.strip()
            group = [row for row in lot_rows[lot_no] if row.catch_no == spec.catch_no]
            active = [row for row in group if not row.stopped]
            if group and not active:
                logger.warning("duplicate_catch_rejected", extra={
                    "project_id": project_id,
                    "lot_no": lot_no,
                    "catch_no": spec.catch_no,
                    "reason": "stopped",
                })
                raise DuplicateCatchError(project_id, lot_no, spec.catch_no)
            plan.append((index, spec, active))

        created: list[QuantitySheet] = []
        updated: list[QuantitySheet] = []
        for index, spec, active in plan:
            if not active:
                created.extend(
                    self._stage_row(project, expanded)
                    for expanded in expansion.group(index)
                )
                continue
            for row in active:
                self._merge_fields(row, spec)
            self._merge_quantity(spec, active)
            updated.extend(active)

        self.session.add_all(created)
        self.session.flush()

        lot_shares = tuple(
            self.recompute_shares(key.project_id, key.lot_no) for key in touched
        )

        logger.info("catches_upserted", extra={
            "project_id": project_id,
            "submitted_count": len(catches),
            "created_count": len(created),
            "updated_catch_ids": [row.id for row in updated],
            "lots": [k.lot_no for k in touched],
        })

        return CatchUpsertResult(
            project_id=project_id,
            created=tuple(CatchInfo.from_model(row) for row in created),
            updated=tuple(CatchInfo.from_model(row) for row in updated),
            lot_shares=lot_shares,
        )

    # -- re-lot ------------------------------------------------------------

    def _exam_date_between(self, row: QuantitySheet, first: date, last: date) -> bool:
        parsed = parse_stored_date(row.exam_date, self._stored_date_format)
        return parsed is not None and first <= parsed <= last

    def relot_by_exam_date(
        self,
        project_id: int,
        start_date: str,
        end_date: str,
        new_lot_no: str,
    ) -> RelotResult:
        """
        Move every row whose exam date falls in [start_date, end_date] into
        new_lot_no.

        Dates use the external transfer format.  Rows already in the new lot
        and rows without a parsable exam date stay where they are.  Work
        transactions of moved rows that still carry their source lot are
        rewritten.  Source lots that keep rows are recomputed, then the new
        lot.

        Raises:
            InvalidExamDateError, InvalidDateRangeError: Bad range.
            MissingLotNumberError: Blank new lot.
            InvalidLotNumberError: New lot is not a number.
            ProjectNotFoundError: Unknown project.
            NoCatchesInRangeError: No row falls in the range.
            DuplicateCatchError: A catch number would end up twice in the
                new lot.
            ZeroQuantityLotError: A lot would be left with rows but no
                active quantity.
        """
        first, last = parse_exam_date_range(
            start_date, end_date, self._transfer_date_format
        )
        target = (new_lot_no or "").strip()
        if not target:
            raise MissingLotNumberError()
        if not target.isdigit():
            raise InvalidLotNumberError(target)
        self._get_project(project_id)

        candidates = self.session.scalars(
            select(QuantitySheet)
            .where(
                QuantitySheet.project_id == project_id,
                QuantitySheet.lot_no != target,
                QuantitySheet.exam_date.is_not(None),
            )
            .order_by(QuantitySheet.id)
            .with_for_update()
        )
        moving = [row for row in candidates if self._exam_date_between(row, first, last)]
        if not moving:
            logger.warning("relot_no_catches_in_range", extra={
                "project_id": project_id,
                "start_date": start_date,
                "end_date": end_date,
            })
            raise NoCatchesInRangeError(project_id, start_date, end_date)

        by_source: dict[str, list[QuantitySheet]] = {}
        source_of: dict[str, str] = {}
        for row in moving:
            if source_of.setdefault(row.catch_no, row.lot_no) != row.lot_no:
                raise DuplicateCatchError(project_id, target, row.catch_no)
            by_source.setdefault(row.lot_no, []).append(row)
        self._reject_existing(
            project_id, target, list(source_of), self._lock_lot_rows(project_id, target)
        )

        for row in moving:
            row.lot_no = target
        self.session.flush()

        sources = sorted(LotKey(project_id, lot_no) for lot_no in by_source)
        work_updated = 0
        for key in sources:
            result = self.session.execute(
                update(WorkTransaction)
                .where(
                    WorkTransaction.quantity_sheet_id.in_(
                        [row.id for row in by_source[key.lot_no]]
                    ),
                    WorkTransaction.lot_no == key.lot_no,
                )
                .values(lot_no=target)
                .execution_options(synchronize_session="fetch")
            )
            work_updated += result.rowcount or 0

        lot_shares = [
            self.recompute_shares(project_id, key.lot_no)
            for key in sources
            if self._lock_lot_rows(project_id, key.lot_no)
        ]
        lot_shares.append(self.recompute_shares(project_id, target))

        moved_ids = tuple(row.id for row in moving)
        logger.info("catches_relotted", extra={
            "project_id": project_id,
            "new_lot_no": target,
            "source_lots": [k.lot_no for k in sources],
            "start_date": start_date,
            "end_date": end_date,
            "moved_catch_ids": list(moved_ids),
            "work_transactions_updated": work_updated,
        })

        return RelotResult(
            project_id=project_id,
            new_lot_no=target,
            source_lots=tuple(k.lot_no for k in sources),
            moved_catch_ids=moved_ids,
            work_transactions_updated=work_updated,
            lot_shares=tuple(lot_shares),
        )

    # -- deletion / release ------------------------------------------------

    def _delete_work_for(self, catch_ids: Sequence[int]) -> None:
        if catch_ids:
            self.session.execute(
                delete(WorkTransaction)
                .where(WorkTransaction.quantity_sheet_id.in_(catch_ids))
                .execution_options(synchronize_session="fetch")
            )

    def delete_catch(self, catch_id: int) -> LotShares | None:
        """
        Delete one catch row and recompute its lot when rows remain.

        Returns:
            The lot's new shares, or None when the lot is now empty.
        """
        row = self._lock_catch(catch_id)
        project_id, lot_no = row.project_id, row.lot_no

        self._delete_work_for([row.id])
        self.session.delete(row)
        self.session.flush()

        remaining = self._lock_lot_rows(project_id, lot_no)
        shares = self.recompute_shares(project_id, lot_no) if remaining else None

        logger.info("catch_deleted", extra={
            "catch_id": catch_id,
            "project_id": project_id,
            "lot_no": lot_no,
            "lot_emptied": not remaining,
        })
        return shares

    def delete_lot(self, project_id: int, lot_no: str) -> int:
        """
        Delete every row of a lot.

        Raises:
            LotNotFoundError: The lot has no rows.
        """
        rows = self._lock_lot_rows(project_id, lot_no)
        if not rows:
            raise LotNotFoundError(project_id, lot_no)

        self._delete_work_for([row.id for row in rows])
        for row in rows:
            self.session.delete(row)
        self.session.flush()

        logger.info("lot_deleted", extra={
            "project_id": project_id,
            "lot_no": lot_no,
            "row_count": len(rows),
        })
        return len(rows)

    def release_lot(self, project_id: int, lot_no: str) -> int:
        """
        Mark every row of a lot as released for production.

        Raises:
            LotNotFoundError: The lot has no rows.
        """
        rows = self._lock_lot_rows(project_id, lot_no)
        if not rows:
            raise LotNotFoundError(project_id, lot_no)

        for row in rows:
            row.status = RELEASED_STATUS
        self.session.flush()

        logger.info("lot_released", extra={
            "project_id": project_id,
            "lot_no": lot_no,
            "row_count": len(rows),
        })
        return len(rows)
