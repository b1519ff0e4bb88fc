"""
Module: production_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines: share computation, series expansion and process
    predecessor resolution.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import production_kernel domain values, db.types constants,
    exceptions and logging.  MUST NOT import production_services.

Invariants enforced:
    - Purity: engines never read the clock or the database.
    - Decimal-only arithmetic for quantities and shares.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine`` (see
    ``production_engines.tracer``), emitting PRODUCTION_ENGINE_TRACE records.
"""

from production_engines.sequencing import PreviousProcessResolver
from production_engines.series import (
    SeriesExpansion,
    SeriesExpansionEngine,
    effective_series_count,
    expand_for_series,
)
from production_engines.shares import (
    ShareAllocation,
    ShareComputation,
    ShareEngine,
    ShareLine,
    compute_shares,
)
from production_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "PreviousProcessResolver",
    "SeriesExpansion",
    "SeriesExpansionEngine",
    "ShareAllocation",
    "ShareComputation",
    "ShareEngine",
    "ShareLine",
    "compute_input_fingerprint",
    "compute_shares",
    "effective_series_count",
    "expand_for_series",
    "traced_engine",
]
