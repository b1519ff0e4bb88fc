"""
Module: production_kernel.models.quantity_sheet
Responsibility: ORM persistence for quantity-sheet rows ("catches").  A logical
    catch may span several rows (one per series / language variant) linked by
    (project_id, lot_no, catch_no).
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Share invariant: for a (project_id, lot_no), the sum of
      percentage_share over non-stopped rows is 100 whenever their quantity
      total is > 0.  Maintained by QuantityAllocationService, never by callers.
    - quantity >= 0 (enforced at the engine / service boundary).
    - Stopped rows are excluded from allocation but retained for audit; their
      last computed share is left untouched.

Failure modes:
    - IntegrityError on missing project_id (FK) or lot_no (NOT NULL).
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from production_kernel.db.base import TrackedBase

UNRELEASED_STATUS = 0
RELEASED_STATUS = 1


class QuantitySheet(TrackedBase):
    """
    One persisted catch row.

    Contract:
        ``percentage_share`` is derived.  It is written only by the allocation
        service after recomputing the whole lot.

    Guarantees:
        - (project_id, lot_no) index supports per-lot reads under lock.
        - (project_id, lot_no, catch_no) index supports variant grouping.

    Non-goals:
        - ``assigned_processes`` is produced by the process-assignment
          collaborator and treated as opaque here.
    """

    __tablename__ = "quantity_sheets"

    __table_args__ = (
        Index("idx_qs_project_lot", "project_id", "lot_no"),
        Index("idx_qs_project_lot_catch", "project_id", "lot_no", "catch_no"),
    )

    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id"),
        nullable=False,
    )

    lot_no: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    catch_no: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    # Derived; see module invariants
    percentage_share: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    stopped: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # 1-based position inside a series expansion group
    series_index: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
    )

    assigned_processes: Mapped[list[int]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    # Stored as ISO yyyy-MM-dd
    exam_date: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
    )

    exam_time: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    paper_title: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    paper_number: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    language_ids: Mapped[list[int]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    pages: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # 0 = unreleased, 1 = released for production
    status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return (
            f"<QuantitySheet {self.id}: project={self.project_id} "
            f"lot={self.lot_no} catch={self.catch_no} qty={self.quantity} "
            f"share={self.percentage_share} stopped={self.stopped}>"
        )
