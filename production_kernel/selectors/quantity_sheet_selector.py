"""
Module: production_kernel.selectors.quantity_sheet_selector
Responsibility: Read-only queries over quantity-sheet rows: lot listings,
    per-lot and per-catch row views, exam dates and per-lot date ranges,
    and share totals.
Architecture position: Kernel > Selectors.  Returns CatchInfo DTOs and plain
    values, never ORM rows.

Invariants enforced:
    - Lot listings are ordered by numeric lot value (lot_sort_key).
    - Share totals are summed as Decimal in Python, not in SQL, so SQLite's
      REAL storage cannot introduce float drift into the result.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from production_kernel.db.types import ZERO
from production_kernel.domain.dtos import CatchInfo, LotDateRange
from production_kernel.domain.exam_dates import STORED_DATE_FORMAT, parse_stored_date
from production_kernel.domain.values import lot_sort_key
from production_kernel.models.quantity_sheet import RELEASED_STATUS, QuantitySheet
from production_kernel.selectors.base import BaseSelector


class QuantitySheetSelector(BaseSelector[QuantitySheet]):
    """Queries over quantity_sheets."""

    def _distinct_lots(
        self, project_id: int, released: bool | None = None
    ) -> list[str]:
        stmt = select(QuantitySheet.lot_no).where(
            QuantitySheet.project_id == project_id
        ).distinct()
        if released is True:
            stmt = stmt.where(QuantitySheet.status == RELEASED_STATUS)
        elif released is False:
            stmt = stmt.where(QuantitySheet.status != RELEASED_STATUS)
        return sorted(self.session.scalars(stmt), key=lot_sort_key)

    def lots(self, project_id: int) -> list[str]:
        """Distinct numeric lot labels of a project, in numeric order."""
        return [
            lot for lot in self._distinct_lots(project_id)
            if lot.strip().isdigit()
        ]

    def released_lots(self, project_id: int) -> list[str]:
        """
        Lots with at least one released row.

        A partly released lot is listed here and by unreleased_lots().
        """
        return self._distinct_lots(project_id, released=True)

    def unreleased_lots(self, project_id: int) -> list[str]:
        """Lots with at least one row not yet released."""
        return self._distinct_lots(project_id, released=False)

    def lot_rows(self, project_id: int, lot_no: str) -> tuple[CatchInfo, ...]:
        rows = self.session.scalars(
            select(QuantitySheet)
            .where(
                QuantitySheet.project_id == project_id,
                QuantitySheet.lot_no == lot_no,
            )
            .order_by(QuantitySheet.id)
        )
        return tuple(CatchInfo.from_model(row) for row in rows)

    def catch_rows(
        self, project_id: int, lot_no: str, catch_no: str
    ) -> tuple[CatchInfo, ...]:
        rows = self.session.scalars(
            select(QuantitySheet)
            .where(
                QuantitySheet.project_id == project_id,
                QuantitySheet.lot_no == lot_no,
                QuantitySheet.catch_no == catch_no,
            )
            .order_by(QuantitySheet.series_index, QuantitySheet.id)
        )
        return tuple(CatchInfo.from_model(row) for row in rows)

    def get_catch(self, catch_id: int) -> CatchInfo | None:
        row = self.session.get(QuantitySheet, catch_id)
        return CatchInfo.from_model(row) if row is not None else None

    def exam_dates(self, project_id: int, lot_no: str | None = None) -> list[str]:
        """Distinct stored (ISO) exam dates, ascending.  Rows without a date are skipped."""
        stmt = (
            select(QuantitySheet.exam_date)
            .where(
                QuantitySheet.project_id == project_id,
                QuantitySheet.exam_date.is_not(None),
            )
            .distinct()
        )
        if lot_no is not None:
            stmt = stmt.where(QuantitySheet.lot_no == lot_no)
        return sorted(d for d in self.session.scalars(stmt) if d)

    def _dated_rows(self, project_id: int) -> list[tuple[str, str]]:
        return list(
            self.session.execute(
                select(QuantitySheet.lot_no, QuantitySheet.exam_date)
                .where(
                    QuantitySheet.project_id == project_id,
                    QuantitySheet.exam_date.is_not(None),
                    QuantitySheet.exam_date != "",
                )
                .distinct()
            ).tuples()
        )

    def lot_date_ranges(
        self,
        project_id: int,
        stored_format: str = STORED_DATE_FORMAT,
    ) -> tuple[LotDateRange, ...]:
        """
        First and last stored exam date of every lot that has a date.

        Dates that do not parse are ignored; a lot whose dates are all
        free-form gets a range of (None, None).
        """
        by_lot: dict[str, list[date]] = {}
        for lot_no, exam_date in self._dated_rows(project_id):
            parsed = by_lot.setdefault(lot_no, [])
            value = parse_stored_date(exam_date, stored_format)
            if value is not None:
                parsed.append(value)

        ranges = []
        for lot_no in sorted(by_lot, key=lot_sort_key):
            dates = by_lot[lot_no]
            ranges.append(
                LotDateRange(
                    lot_no=lot_no,
                    first_exam_date=min(dates).strftime(stored_format) if dates else None,
                    last_exam_date=max(dates).strftime(stored_format) if dates else None,
                )
            )
        return tuple(ranges)

    def lots_with_exam_dates_between(
        self,
        project_id: int,
        first: date,
        last: date,
        stored_format: str = STORED_DATE_FORMAT,
    ) -> list[str]:
        """Lots holding a row whose exam date falls in [first, last]."""
        lots = set()
        for lot_no, exam_date in self._dated_rows(project_id):
            value = parse_stored_date(exam_date, stored_format)
            if value is not None and first <= value <= last:
                lots.add(lot_no)
        return sorted(lots, key=lot_sort_key)

    def active_share_total(self, project_id: int, lot_no: str) -> Decimal:
        """Sum of percentage_share over non-stopped rows of a lot."""
        shares = self.session.scalars(
            select(QuantitySheet.percentage_share).where(
                QuantitySheet.project_id == project_id,
                QuantitySheet.lot_no == lot_no,
                QuantitySheet.stopped.is_(False),
            )
        )
        return sum((Decimal(s) for s in shares), ZERO)
