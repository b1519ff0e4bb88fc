"""
Module: production_engines.series
Responsibility:
    Split each submitted catch into ``series_count`` variants (booklet
    series A, B, C, ...), dividing the quantity evenly between them.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Produces staged ExpandedCatch values; persistence is the service's job.

Invariants enforced:
    - Conservation: the variant quantities of one source catch sum exactly
      to the source quantity.  Each variant gets quantity / n truncated to
      QUANTITY_DECIMAL_PLACES and the last variant absorbs the remainder, so
      no variant is ever negative.
    - Grouping: output is contiguous per source catch, source order kept,
      series_index running 1..n inside each group.
    - All-or-nothing: every input is validated before any output is built,
      and a cancelled expansion returns nothing.

Failure modes:
    - MissingLotNumberError if any input has a blank lot number.
    - InvalidQuantityError on a negative quantity.
    - InvalidSeriesCountError on a negative series count.
    - AllocationCancelledError when the cancellation callback fires.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import ROUND_DOWN

from production_engines.tracer import traced_engine
from production_kernel.db.types import ZERO, round_quantity
from production_kernel.domain.dtos import ExpandedCatch
from production_kernel.domain.values import CatchSpec
from production_kernel.exceptions import (
    AllocationCancelledError,
    InvalidQuantityError,
    InvalidSeriesCountError,
    MissingLotNumberError,
)
from production_kernel.logging_config import get_logger

logger = get_logger("engines.series")


@dataclass(frozen=True)
class SeriesExpansion:
    """
    Staged output of a series expansion.

    Guarantees:
        - len(catches) == source_count * series_count
        - catches are grouped by source_index in input order.
    """

    catches: tuple[ExpandedCatch, ...]
    series_count: int
    source_count: int

    def __len__(self) -> int:
        return len(self.catches)

    def __iter__(self):
        return iter(self.catches)

    def group(self, source_index: int) -> tuple[ExpandedCatch, ...]:
        """Variants produced from one input catch."""
        start = source_index * self.series_count
        return self.catches[start:start + self.series_count]


def effective_series_count(series_count: int) -> int:
    """Series count used for arithmetic: 0 means no splitting."""
    if series_count < 0:
        raise InvalidSeriesCountError(series_count)
    return max(series_count, 1)


class SeriesExpansionEngine:
    """
    Series splitter.

    Contract:
        Pure function of (catches, series_count).  The optional
        ``should_cancel`` callback is polled before each source catch.
    Non-goals:
        - Does not decide whether a project is split at all; callers apply
          the project-type rule and pass series_count accordingly.
    """

    @traced_engine("series", "1.0", fingerprint_fields=("catches", "series_count"))
    def expand(
        self,
        catches: Sequence[CatchSpec],
        series_count: int,
        should_cancel: Callable[[], bool] | None = None,
    ) -> SeriesExpansion:
        """
        Expand catches into series variants.

        Args:
            catches: Submitted catches.
            series_count: Variants per catch; 0 is treated as 1.
            should_cancel: Optional callback polled between catches.

        Raises:
            MissingLotNumberError, InvalidQuantityError,
            InvalidSeriesCountError, AllocationCancelledError.
        """
        n = effective_series_count(series_count)

        for spec in catches:
            if not spec.has_lot:
                logger.warning("series_missing_lot_number", extra={
                    "catch_no": spec.catch_no,
                })
                raise MissingLotNumberError(spec.catch_no)
            if spec.quantity < ZERO:
                raise InvalidQuantityError(spec.catch_no, str(spec.quantity))

        staged: list[ExpandedCatch] = []
        for source_index, spec in enumerate(catches):
            if should_cancel is not None and should_cancel():
                logger.info("series_expansion_cancelled", extra={
                    "processed": source_index,
                    "total": len(catches),
                })
                raise AllocationCancelledError(source_index, len(catches))
            staged.extend(self._split(spec, source_index, n))

        logger.debug("series_expanded", extra={
            "source_count": len(catches),
            "series_count": n,
            "variant_count": len(staged),
        })

        return SeriesExpansion(
            catches=tuple(staged),
            series_count=n,
            source_count=len(catches),
        )

    def _split(
        self,
        spec: CatchSpec,
        source_index: int,
        n: int,
    ) -> list[ExpandedCatch]:
        if n == 1:
            return [ExpandedCatch(catch=spec, source_index=source_index, series_index=1)]

        per_variant = round_quantity(spec.quantity / n, rounding=ROUND_DOWN)
        # Last variant carries the remainder
        last = spec.quantity - per_variant * (n - 1)
        return [
            ExpandedCatch(
                catch=dataclasses.replace(
                    spec, quantity=last if i == n else per_variant
                ),
                source_index=source_index,
                series_index=i,
            )
            for i in range(1, n + 1)
        ]


_default_engine = SeriesExpansionEngine()


def expand_for_series(
    catches: Sequence[CatchSpec],
    series_count: int,
    should_cancel: Callable[[], bool] | None = None,
) -> SeriesExpansion:
    """Module-level convenience for SeriesExpansionEngine().expand()."""
    return _default_engine.expand(catches, series_count, should_cancel=should_cancel)
