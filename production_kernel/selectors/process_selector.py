"""
Module: production_kernel.selectors.process_selector
Responsibility: Builds immutable process catalog snapshots from the
    processes and project_processes tables.
Architecture position: Kernel > Selectors.  The snapshot it returns is the
    only thing the predecessor resolver reads.
"""

from __future__ import annotations

from collections import defaultdict

from sqlalchemy import select

from production_kernel.domain.process_catalog import (
    ProcessCatalogSnapshot,
    ProcessDefinition,
    ProcessOrderEntry,
)
from production_kernel.exceptions import ProcessNotFoundError
from production_kernel.logging_config import get_logger
from production_kernel.models.process import Process
from production_kernel.models.project import ProjectProcess
from production_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.process")


class ProcessSelector(BaseSelector[Process]):
    """Catalog reads."""

    def load_catalog(self) -> ProcessCatalogSnapshot:
        """Read the whole catalog and every project's order into a snapshot."""
        processes = [
            ProcessDefinition.from_model(p)
            for p in self.session.scalars(select(Process).order_by(Process.id))
        ]

        orders: dict[int, list[ProcessOrderEntry]] = defaultdict(list)
        for row in self.session.scalars(
            select(ProjectProcess).order_by(ProjectProcess.project_id, ProjectProcess.sequence)
        ):
            orders[row.project_id].append(
                ProcessOrderEntry(process_id=row.process_id, sequence=row.sequence)
            )

        snapshot = ProcessCatalogSnapshot.build(processes, orders)
        logger.info("process_catalog_loaded", extra={
            "process_count": len(processes),
            "project_count": len(orders),
            "catalog_version": snapshot.version,
        })
        return snapshot

    def get_process(self, process_id: int) -> ProcessDefinition:
        """
        Raises:
            ProcessNotFoundError: Unknown process id.
        """
        process = self.session.get(Process, process_id)
        if process is None:
            raise ProcessNotFoundError(process_id)
        return ProcessDefinition.from_model(process)
