"""
Module: production_engines.shares
Responsibility:
    Compute the percentage share of each active catch within its lot:
    share_i = quantity_i / sum(quantity) * 100, with deterministic rounding.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import production_kernel domain values, db.types constants and
    exceptions.

Invariants enforced:
    - Shares of the supplied lines sum to exactly 100: every share is
      rounded to QUANTITY_DECIMAL_PLACES (ROUND_HALF_UP) and the rounding
      difference is assigned to a single designated line: the line with the
      largest quantity, the last one on ties.  Its share is at least
      100 / len(lines), so the adjustment can never make it negative.
    - Idempotence: identical inputs always produce identical outputs.
    - Purity: no clock access, no I/O.

Failure modes:
    - ZeroQuantityLotError when the lines are empty or their total is zero.
    - InvalidQuantityError on a negative quantity.

Usage:
    from production_engines.shares import ShareLine, compute_shares

    result = compute_shares(
        lines=[ShareLine(line_id=1, quantity=Decimal("30")),
               ShareLine(line_id=2, quantity=Decimal("70"))],
    )
    result.shares_by_id()  # {1: Decimal("30.000000000"), 2: Decimal("70.000000000")}
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from production_engines.tracer import traced_engine
from production_kernel.db.types import ONE_HUNDRED, ZERO, round_quantity, to_quantity
from production_kernel.exceptions import InvalidQuantityError, ZeroQuantityLotError
from production_kernel.logging_config import get_logger

logger = get_logger("engines.shares")


@dataclass(frozen=True)
class ShareLine:
    """
    One active catch row offered to the share engine.

    Contract:
        ``line_id`` is opaque to the engine; callers pass catch row ids.
    """

    line_id: int
    quantity: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.quantity, Decimal):
            object.__setattr__(self, "quantity", to_quantity(self.quantity))


@dataclass(frozen=True)
class ShareAllocation:
    """Computed share of one line."""

    line_id: int
    quantity: Decimal
    share: Decimal
    is_rounding_target: bool = False


@dataclass(frozen=True)
class ShareComputation:
    """
    Result of a share computation.

    Guarantees:
        - sum(line.share for line in lines) == 100
        - ``lines`` keeps the input order.
    """

    lines: tuple[ShareAllocation, ...]
    total_quantity: Decimal
    rounding_adjustment: Decimal

    @property
    def share_total(self) -> Decimal:
        return sum((line.share for line in self.lines), ZERO)

    def shares_by_id(self) -> dict[int, Decimal]:
        return {line.line_id: line.share for line in self.lines}


class ShareEngine:
    """
    Percentage-share calculator for one lot.

    Contract:
        Pure function with deterministic rounding.
        No I/O, no database access.
    Guarantees:
        - Full-precision intermediate quotient, final shares rounded to the
          stored precision.
        - Rounding difference lands on exactly one line.
    Non-goals:
        - Does not decide which rows are active; callers filter stopped rows.
    """

    @traced_engine("shares", "1.0", fingerprint_fields=("lines",))
    def compute(
        self,
        lines: Sequence[ShareLine],
        project_id: int | None = None,
        lot_no: str = "",
    ) -> ShareComputation:
        """
        Compute shares for the active lines of one lot.

        Args:
            lines: Active lines in the caller's deterministic order.
            project_id: Used only for error reporting.
            lot_no: Used only for error reporting.

        Raises:
            ZeroQuantityLotError: Empty input or zero total quantity.
            InvalidQuantityError: Negative quantity on any line.
        """
        for line in lines:
            if line.quantity < ZERO:
                raise InvalidQuantityError(str(line.line_id), str(line.quantity))

        total = sum((line.quantity for line in lines), ZERO)
        if total == ZERO:
            logger.warning("shares_zero_total", extra={
                "project_id": project_id,
                "lot_no": lot_no,
                "line_count": len(lines),
            })
            raise ZeroQuantityLotError(project_id, lot_no)

        rounding_index = max(
            range(len(lines)), key=lambda i: (lines[i].quantity, i)
        )

        naive = [
            round_quantity(line.quantity * ONE_HUNDRED / total) for line in lines
        ]
        allocated_elsewhere = sum(
            (share for i, share in enumerate(naive) if i != rounding_index), ZERO
        )
        target_share = round_quantity(ONE_HUNDRED - allocated_elsewhere)
        rounding_adjustment = target_share - naive[rounding_index]

        allocations = tuple(
            ShareAllocation(
                line_id=line.line_id,
                quantity=line.quantity,
                share=target_share if i == rounding_index else naive[i],
                is_rounding_target=i == rounding_index,
            )
            for i, line in enumerate(lines)
        )

        logger.debug("shares_computed", extra={
            "project_id": project_id,
            "lot_no": lot_no,
            "line_count": len(allocations),
            "total_quantity": str(total),
            "rounding_adjustment": str(rounding_adjustment),
        })

        return ShareComputation(
            lines=allocations,
            total_quantity=total,
            rounding_adjustment=rounding_adjustment,
        )


_default_engine = ShareEngine()


def compute_shares(
    lines: Sequence[ShareLine],
    project_id: int | None = None,
    lot_no: str = "",
) -> ShareComputation:
    """Module-level convenience for ShareEngine().compute()."""
    return _default_engine.compute(lines, project_id=project_id, lot_no=lot_no)
