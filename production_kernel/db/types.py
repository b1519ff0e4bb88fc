"""
Module: production_kernel.db.types
Responsibility: Annotated type aliases and utility functions for quantity and
    percentage-share columns.  Centralizes precision and rounding so that every
    model, engine and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and the engines.  MUST NOT import from any of those
    layers.

Invariants enforced:
    - QUANTITY_DECIMAL_PLACES defines the canonical precision for both
      quantities and shares.  round_quantity() is the ONLY sanctioned rounding
      function for those values.
    - No floats: quantities and shares are Decimal end to end.

Failure modes:
    - InvalidQuantityError from to_quantity() on non-numeric, non-finite or
      out-of-range input.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from sqlalchemy import Numeric, String

from production_kernel.exceptions import InvalidQuantityError

# Catch quantity: 38 digits total, 9 decimal places
Quantity = Annotated[Decimal, Numeric(38, 9)]

# Percentage share of a lot (0-100), same precision as quantities
Share = Annotated[Decimal, Numeric(38, 9)]

# Lot label, logically ordered ("1", "2", ...)
LotNumber = Annotated[str, String(20)]

# Catch identifier, unique per project+lot among active catches
CatchNumber = Annotated[str, String(50)]

# ISO yyyy-MM-dd
IsoDate = Annotated[str, String(10)]

QUANTITY_DECIMAL_PLACES = 9
DEFAULT_ROUNDING = ROUND_HALF_UP
ONE_HUNDRED = Decimal("100")
ZERO = Decimal("0")


def to_quantity(value: Decimal | int | str | float, catch_no: str = "") -> Decimal:
    """
    Coerce an incoming quantity to a Decimal at the stored precision.

    Floats go through ``str()`` so that 0.1 becomes Decimal("0.1") rather
    than its binary expansion.  The result is rounded with round_quantity()
    so that callers compute with the value the column will hold.

    Raises:
        InvalidQuantityError: The value is not a number, is NaN or infinite,
            or has more integer digits than the decimal context can round.
    """
    try:
        if isinstance(value, Decimal):
            quantity = value
        elif isinstance(value, float):
            quantity = Decimal(str(value))
        elif isinstance(value, str):
            quantity = Decimal(value.strip())
        else:
            quantity = Decimal(value)
        if not quantity.is_finite():
            raise InvalidQuantityError(catch_no, str(value))
        return round_quantity(quantity)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidQuantityError(catch_no, str(value)) from exc


def round_quantity(
    value: Decimal,
    decimal_places: int = QUANTITY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a quantity or share to the stored precision.

    Preconditions: value is a Decimal.
    Postconditions: Returns value quantized to ``decimal_places`` using the
        given rounding mode.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)
