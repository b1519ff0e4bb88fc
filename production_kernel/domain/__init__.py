"""Pure domain layer: value objects, DTOs and the process catalog snapshot."""

from production_kernel.domain.dtos import (
    CatchInfo,
    CatchShare,
    CatchUpsertResult,
    ExpandedCatch,
    LotDateRange,
    LotShares,
    PredecessorResolution,
    RelotResult,
    StopToggleResult,
    TransferResult,
)
from production_kernel.domain.process_catalog import (
    ProcessCatalogCache,
    ProcessCatalogSnapshot,
    ProcessDefinition,
    ProcessKind,
    ProcessOrderEntry,
)
from production_kernel.domain.values import CatchSpec, LotKey, lot_sort_key

__all__ = [
    "CatchInfo",
    "CatchShare",
    "CatchSpec",
    "CatchUpsertResult",
    "ExpandedCatch",
    "LotDateRange",
    "LotKey",
    "LotShares",
    "PredecessorResolution",
    "ProcessCatalogCache",
    "ProcessCatalogSnapshot",
    "ProcessDefinition",
    "ProcessKind",
    "ProcessOrderEntry",
    "RelotResult",
    "StopToggleResult",
    "TransferResult",
    "lot_sort_key",
]
