"""
Catch field registry.

Explicit name -> accessor table for quantity-sheet fields, built at import
time.  Callers that need to read a catch field by name (column pickers,
exports) go through read_catch_field() instead of getattr() so that only
registered fields are reachable.
"""

from __future__ import annotations

from collections.abc import Callable
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from production_kernel.exceptions import UnknownCatchFieldError

if TYPE_CHECKING:
    from production_kernel.models.quantity_sheet import QuantitySheet

CatchFieldAccessor = Callable[["QuantitySheet"], Any]

CATCH_FIELD_ACCESSORS: MappingProxyType[str, CatchFieldAccessor] = MappingProxyType(
    {
        "id": lambda row: row.id,
        "project_id": lambda row: row.project_id,
        "lot_no": lambda row: row.lot_no,
        "catch_no": lambda row: row.catch_no,
        "quantity": lambda row: row.quantity,
        "percentage_share": lambda row: row.percentage_share,
        "stopped": lambda row: row.stopped,
        "series_index": lambda row: row.series_index,
        "assigned_processes": lambda row: list(row.assigned_processes or ()),
        "exam_date": lambda row: row.exam_date,
        "exam_time": lambda row: row.exam_time,
        "paper_title": lambda row: row.paper_title,
        "paper_number": lambda row: row.paper_number,
        "language_ids": lambda row: list(row.language_ids or ()),
        "pages": lambda row: row.pages,
        "status": lambda row: row.status,
    }
)


def catch_field_names() -> list[str]:
    """Registered field names in declaration order."""
    return list(CATCH_FIELD_ACCESSORS)


def read_catch_field(row: QuantitySheet, name: str) -> Any:
    """
    Read one registered field from a row.

    Raises:
        UnknownCatchFieldError: If ``name`` is not registered.
    """
    accessor = CATCH_FIELD_ACCESSORS.get(name)
    if accessor is None:
        raise UnknownCatchFieldError(name)
    return accessor(row)
