"""Flush-only kernel services."""

from production_kernel.services.lot_lock_registry import LotLockRegistry
from production_kernel.services.process_assignment import (
    CatchProcessAssigner,
    ProjectSequenceAssigner,
)
from production_kernel.services.quantity_allocation_service import (
    QuantityAllocationService,
)

__all__ = [
    "CatchProcessAssigner",
    "LotLockRegistry",
    "ProjectSequenceAssigner",
    "QuantityAllocationService",
]
