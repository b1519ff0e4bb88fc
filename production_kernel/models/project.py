"""
Module: production_kernel.models.project
Responsibility: ORM persistence for projects and their per-project process
    ordering.  Projects are configuration entities created out of band; the
    kernel only reads them.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (project_id, process_id) is unique in project_processes: a project uses
      a process at most once.
    - (project_id, sequence) is unique in project_processes.  Gaps between
      sequence numbers are permitted.
    - series_count >= 0; zero means "no splitting" and is treated as 1 for
      arithmetic by the series engine.

Failure modes:
    - IntegrityError on duplicate (project_id, process_id) or
      (project_id, sequence).
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from production_kernel.db.base import TrackedBase


class ProjectType(str, Enum):
    """Project categories.  Only booklets are split into series."""

    BOOKLET = "Booklet"
    PAPER = "Paper"


class Project(TrackedBase):
    """
    Exam production project.

    Contract:
        ``series_count`` and ``project_type`` drive series expansion for new
        catches.  ``process_order`` is the project's custom process sequence.

    Non-goals:
        - Projects are never mutated by the allocation services.
    """

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    project_type: Mapped[ProjectType] = mapped_column(
        String(20),
        default=ProjectType.PAPER,
        nullable=False,
    )

    # 0 means "no splitting"
    series_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    process_order: Mapped[list["ProjectProcess"]] = relationship(
        back_populates="project",
        order_by="ProjectProcess.sequence",
        cascade="all, delete-orphan",
    )

    @property
    def is_booklet(self) -> bool:
        return self.project_type == ProjectType.BOOKLET

    def __repr__(self) -> str:
        return (
            f"<Project {self.id}: {self.name} type={self.project_type} "
            f"series={self.series_count}>"
        )


class ProjectProcess(TrackedBase):
    """
    One slot of a project's process ordering.

    Guarantees:
        - Unique per (project_id, process_id) and per (project_id, sequence).
    """

    __tablename__ = "project_processes"

    __table_args__ = (
        UniqueConstraint("project_id", "process_id", name="uq_project_process"),
        UniqueConstraint("project_id", "sequence", name="uq_project_sequence"),
        Index("idx_project_process_project", "project_id"),
    )

    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id"),
        nullable=False,
    )

    process_id: Mapped[int] = mapped_column(
        ForeignKey("processes.id"),
        nullable=False,
    )

    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    project: Mapped[Project] = relationship(back_populates="process_order")

    def __repr__(self) -> str:
        return (
            f"<ProjectProcess project={self.project_id} "
            f"process={self.process_id} seq={self.sequence}>"
        )
