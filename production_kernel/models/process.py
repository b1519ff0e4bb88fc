"""
Module: production_kernel.models.process
Responsibility: ORM persistence for the production process catalog.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Process ids are assigned by configuration, not generated, because the
      predecessor rules single out specific ids (binding, cutting).
    - range_start is meaningful only for Independent processes: it names the
      process that always precedes it.
    - range_end on process X names the Dependent process that X feeds into.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from production_kernel.db.base import TrackedBase


class ProcessKind(str, Enum):
    """How a process derives its predecessor."""

    INDEPENDENT = "Independent"
    DEPENDENT = "Dependent"


class Process(TrackedBase):
    """
    A named production step (cutting, binding, packing, ...).

    Non-goals:
        - Does not hold per-project ordering; see ProjectProcess.
    """

    __tablename__ = "processes"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    kind: Mapped[ProcessKind] = mapped_column(
        String(20),
        nullable=False,
    )

    range_start: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    range_end: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Process {self.id}: {self.name} ({self.kind})>"
