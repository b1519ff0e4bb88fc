"""Row builders shared by fixtures and tests."""

from decimal import Decimal

from sqlalchemy.orm import Session

from production_kernel.domain.values import CatchSpec
from production_kernel.models.process import Process, ProcessKind
from production_kernel.models.project import Project, ProjectProcess, ProjectType
from production_kernel.models.quantity_sheet import QuantitySheet
from production_kernel.models.work_transaction import WorkTransaction


def make_process(
    session: Session,
    process_id: int,
    name: str,
    kind: ProcessKind = ProcessKind.INDEPENDENT,
    range_start: int | None = None,
    range_end: int | None = None,
) -> Process:
    process = Process(
        id=process_id,
        name=name,
        kind=kind.value,
        range_start=range_start,
        range_end=range_end,
    )
    session.add(process)
    session.flush()
    return process


def make_project(
    session: Session,
    name: str = "Test Project",
    project_type: ProjectType = ProjectType.PAPER,
    series_count: int = 0,
    process_order: tuple[tuple[int, int], ...] = (),
) -> Project:
    """Create a project; process_order is ((process_id, sequence), ...)."""
    project = Project(
        name=name,
        project_type=project_type.value,
        series_count=series_count,
    )
    session.add(project)
    session.flush()
    for process_id, sequence in process_order:
        session.add(
            ProjectProcess(
                project_id=project.id,
                process_id=process_id,
                sequence=sequence,
            )
        )
    session.flush()
    return project


def make_catch(
    session: Session,
    project_id: int,
    lot_no: str,
    catch_no: str,
    quantity: Decimal | int | str,
    stopped: bool = False,
    percentage_share: Decimal | int | str = 0,
    exam_date: str | None = None,
    status: int = 0,
    series_index: int = 1,
) -> QuantitySheet:
    row = QuantitySheet(
        project_id=project_id,
        lot_no=lot_no,
        catch_no=catch_no,
        quantity=Decimal(str(quantity)),
        percentage_share=Decimal(str(percentage_share)),
        stopped=stopped,
        exam_date=exam_date,
        status=status,
        series_index=series_index,
        assigned_processes=[],
        language_ids=[],
    )
    session.add(row)
    session.flush()
    return row


def make_work_transaction(
    session: Session,
    row: QuantitySheet,
    process_id: int = 1,
    lot_no: str | None = None,
) -> WorkTransaction:
    work = WorkTransaction(
        quantity_sheet_id=row.id,
        project_id=row.project_id,
        process_id=process_id,
        lot_no=lot_no if lot_no is not None else row.lot_no,
    )
    session.add(work)
    session.flush()
    return work


def spec(catch_no: str, lot_no: str, quantity, **kwargs) -> CatchSpec:
    """Shorthand for building CatchSpec inputs."""
    return CatchSpec(catch_no=catch_no, lot_no=lot_no, quantity=Decimal(str(quantity)), **kwargs)
