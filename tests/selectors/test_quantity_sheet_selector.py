"""Tests for QuantitySheetSelector and ProcessSelector."""

from datetime import date
from decimal import Decimal

import pytest

from production_kernel.domain.process_catalog import ProcessKind
from production_kernel.exceptions import ProcessNotFoundError
from production_kernel.models.process import ProcessKind as ProcessKindColumn
from production_kernel.models.quantity_sheet import RELEASED_STATUS
from production_kernel.selectors.process_selector import ProcessSelector
from production_kernel.selectors.quantity_sheet_selector import QuantitySheetSelector


class TestLotListings:
    """Lot listings are numeric and ordered by value."""

    def test_numeric_lots_in_order(self, session, paper_project, create_catch):
        for lot in ("10", "2", "1", "2", "A"):
            create_catch(paper_project.id, lot, f"C{lot}", 1)

        assert QuantitySheetSelector(session).lots(paper_project.id) == ["1", "2", "10"]

    def test_lots_scoped_to_project(self, session, create_project, create_catch):
        first = create_project(name="First")
        second = create_project(name="Second")
        create_catch(first.id, "1", "C1", 1)
        create_catch(second.id, "5", "C1", 1)

        assert QuantitySheetSelector(session).lots(first.id) == ["1"]

    def test_partly_released_lot_in_both_listings(self, session, paper_project, create_catch):
        create_catch(paper_project.id, "1", "C1", 1, status=RELEASED_STATUS)
        create_catch(paper_project.id, "1", "C2", 1, status=RELEASED_STATUS)
        create_catch(paper_project.id, "2", "C3", 1, status=RELEASED_STATUS)
        create_catch(paper_project.id, "2", "C4", 1)
        create_catch(paper_project.id, "3", "C5", 1)

        selector = QuantitySheetSelector(session)
        assert selector.released_lots(paper_project.id) == ["1", "2"]
        assert selector.unreleased_lots(paper_project.id) == ["2", "3"]


class TestRowViews:
    """Row queries return CatchInfo DTOs."""

    def test_lot_rows_in_id_order(self, session, paper_project, create_catch):
        c1 = create_catch(paper_project.id, "1", "C1", 10)
        c2 = create_catch(paper_project.id, "1", "C2", 20)
        create_catch(paper_project.id, "2", "C3", 30)

        rows = QuantitySheetSelector(session).lot_rows(paper_project.id, "1")

        assert [r.id for r in rows] == [c1.id, c2.id]
        assert rows[1].quantity == Decimal("20")

    def test_catch_rows_by_series(self, session, booklet_project, create_catch):
        create_catch(booklet_project.id, "1", "C1", 5, series_index=2)
        create_catch(booklet_project.id, "1", "C1", 5, series_index=1)
        create_catch(booklet_project.id, "1", "C2", 5)

        rows = QuantitySheetSelector(session).catch_rows(booklet_project.id, "1", "C1")

        assert [r.series_index for r in rows] == [1, 2]

    def test_get_catch(self, session, paper_project, create_catch):
        c1 = create_catch(paper_project.id, "1", "C1", 10)
        selector = QuantitySheetSelector(session)

        assert selector.get_catch(c1.id).catch_no == "C1"
        assert selector.get_catch(9999) is None

    def test_exam_dates(self, session, paper_project, create_catch):
        create_catch(paper_project.id, "1", "C1", 1, exam_date="2024-03-05")
        create_catch(paper_project.id, "1", "C2", 1, exam_date="2024-01-10")
        create_catch(paper_project.id, "2", "C3", 1, exam_date="2024-03-05")
        create_catch(paper_project.id, "2", "C4", 1)

        selector = QuantitySheetSelector(session)
        assert selector.exam_dates(paper_project.id) == ["2024-01-10", "2024-03-05"]
        assert selector.exam_dates(paper_project.id, "2") == ["2024-03-05"]

    def test_lot_date_ranges(self, session, paper_project, create_catch):
        create_catch(paper_project.id, "10", "C1", 1, exam_date="2024-03-05")
        create_catch(paper_project.id, "2", "C2", 1, exam_date="2024-04-01")
        create_catch(paper_project.id, "2", "C3", 1, exam_date="2023-12-31")
        create_catch(paper_project.id, "3", "C4", 1, exam_date="next week")
        create_catch(paper_project.id, "4", "C5", 1)

        ranges = QuantitySheetSelector(session).lot_date_ranges(paper_project.id)

        assert [(r.lot_no, r.first_exam_date, r.last_exam_date) for r in ranges] == [
            ("2", "2023-12-31", "2024-04-01"),
            ("3", None, None),
            ("10", "2024-03-05", "2024-03-05"),
        ]

    def test_lots_with_exam_dates_between(self, session, paper_project, create_catch):
        create_catch(paper_project.id, "10", "C1", 1, exam_date="2024-03-05")
        create_catch(paper_project.id, "2", "C2", 1, exam_date="2024-03-31")
        create_catch(paper_project.id, "3", "C3", 1, exam_date="2024-04-01")
        create_catch(paper_project.id, "4", "C4", 1)

        lots = QuantitySheetSelector(session).lots_with_exam_dates_between(
            paper_project.id, date(2024, 3, 1), date(2024, 3, 31)
        )

        assert lots == ["2", "10"]

    def test_active_share_total(self, session, paper_project, create_catch):
        create_catch(paper_project.id, "1", "C1", 1, percentage_share="33.333333333")
        create_catch(paper_project.id, "1", "C2", 1, percentage_share="66.666666667")
        create_catch(
            paper_project.id, "1", "C3", 1, percentage_share="50", stopped=True
        )

        total = QuantitySheetSelector(session).active_share_total(paper_project.id, "1")
        assert total == Decimal("100")


class TestProcessSelector:
    """Catalog snapshots built from the database."""

    def test_load_catalog(self, session, create_process, create_project, captured_logs):
        create_process(1, "Intake")
        create_process(2, "Cutting", range_start=1)
        create_process(4, "Binding", kind=ProcessKindColumn.DEPENDENT)
        project = create_project(process_order=((4, 3), (1, 1), (2, 2)))

        snapshot = ProcessSelector(session).load_catalog()

        assert snapshot.process(4).kind is ProcessKind.DEPENDENT
        assert snapshot.process(2).range_start == 1
        assert [e.process_id for e in snapshot.order_for(project.id)] == [1, 2, 4]
        assert any(r["message"] == "process_catalog_loaded" for r in captured_logs())

    def test_get_process(self, session, create_process):
        create_process(7, "Packing")
        selector = ProcessSelector(session)

        assert selector.get_process(7).name == "Packing"
        with pytest.raises(ProcessNotFoundError):
            selector.get_process(8)
