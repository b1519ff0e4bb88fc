"""Read-only selectors for the production kernel."""

from production_kernel.selectors.process_selector import ProcessSelector
from production_kernel.selectors.quantity_sheet_selector import QuantitySheetSelector

__all__ = [
    "ProcessSelector",
    "QuantitySheetSelector",
]
