"""ORM models for the production kernel."""

from production_kernel.models.process import Process, ProcessKind
from production_kernel.models.project import Project, ProjectProcess, ProjectType
from production_kernel.models.quantity_sheet import QuantitySheet
from production_kernel.models.work_transaction import WorkTransaction

__all__ = [
    "Process",
    "ProcessKind",
    "Project",
    "ProjectProcess",
    "ProjectType",
    "QuantitySheet",
    "WorkTransaction",
]
