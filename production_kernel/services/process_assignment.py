"""
Process assignment collaborator.

Decides the ordered process ids recorded on each new catch row.  The
allocation service calls it once per staged row; its output is stored in
``QuantitySheet.assigned_processes`` and is otherwise opaque to the kernel.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from production_kernel.domain.values import CatchSpec
from production_kernel.models.project import Project, ProjectProcess


class CatchProcessAssigner(Protocol):
    """Produces the ordered process ids for one new catch row."""

    def assign(self, project: Project, catch: CatchSpec) -> list[int]:
        ...


class ProjectSequenceAssigner:
    """
    Default assigner: every catch goes through the project's full process
    order, in sequence.
    """

    def __init__(self, session: Session):
        self._session = session
        self._cache: dict[int, list[int]] = {}

    def assign(self, project: Project, catch: CatchSpec) -> list[int]:
        ids = self._cache.get(project.id)
        if ids is None:
            ids = list(
                self._session.scalars(
                    select(ProjectProcess.process_id)
                    .where(ProjectProcess.project_id == project.id)
                    .order_by(ProjectProcess.sequence)
                )
            )
            self._cache[project.id] = ids
        return list(ids)
