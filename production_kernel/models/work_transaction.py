"""
Module: production_kernel.models.work_transaction
Responsibility: ORM persistence for in-flight work-tracking records.  Each row
    records work on one quantity-sheet row at one process and denormalizes the
    lot number of that row.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - lot_no mirrors the lot of the referenced quantity-sheet row.  Catch
      transfers rewrite it in the same transaction that moves the row.

Non-goals:
    - Work progress semantics (status values, machines, teams) belong to the
      request layer; the kernel only keeps lot_no consistent.
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from production_kernel.db.base import TrackedBase


class WorkTransaction(TrackedBase):
    """Work record for one catch row at one process."""

    __tablename__ = "work_transactions"

    __table_args__ = (
        Index("idx_work_tx_sheet", "quantity_sheet_id"),
        Index("idx_work_tx_project_lot", "project_id", "lot_no"),
    )

    quantity_sheet_id: Mapped[int] = mapped_column(
        ForeignKey("quantity_sheets.id", ondelete="CASCADE"),
        nullable=False,
    )

    project_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    process_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    lot_no: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return (
            f"<WorkTransaction {self.id}: sheet={self.quantity_sheet_id} "
            f"process={self.process_id} lot={self.lot_no}>"
        )
