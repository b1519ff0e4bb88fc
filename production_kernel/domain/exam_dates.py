"""
Exam date conversion between the external and stored formats.

External callers send ``dd-MM-yyyy`` (the transfer boundary).  Rows store
ISO ``yyyy-MM-dd``.  Format strings are strftime patterns so they can be
overridden through configuration.
"""

from __future__ import annotations

from datetime import date, datetime

from production_kernel.exceptions import InvalidDateRangeError, InvalidExamDateError

TRANSFER_DATE_FORMAT = "%d-%m-%Y"
STORED_DATE_FORMAT = "%Y-%m-%d"


def parse_exam_date(value: str, fmt: str = TRANSFER_DATE_FORMAT) -> date:
    """
    Parse an exam date string.

    Raises:
        InvalidExamDateError: If the value is blank or does not match fmt.
    """
    if value is None or not value.strip():
        raise InvalidExamDateError(str(value), fmt)
    try:
        return datetime.strptime(value.strip(), fmt).date()
    except ValueError as exc:
        raise InvalidExamDateError(value, fmt) from exc


def to_stored_date(
    value: str,
    input_format: str = TRANSFER_DATE_FORMAT,
    stored_format: str = STORED_DATE_FORMAT,
) -> str:
    """Convert an external date string to its stored form."""
    return parse_exam_date(value, input_format).strftime(stored_format)


def to_display_date(
    stored: str,
    stored_format: str = STORED_DATE_FORMAT,
    display_format: str = TRANSFER_DATE_FORMAT,
) -> str:
    """
    Reformat a stored date for display.

    Stored values that do not parse are returned unchanged; legacy rows may
    carry free-form dates.
    """
    parsed = parse_stored_date(stored, stored_format)
    return stored if parsed is None else parsed.strftime(display_format)


def parse_stored_date(stored: str | None, fmt: str = STORED_DATE_FORMAT) -> date | None:
    """Parse a stored date, or None when it is blank or free-form."""
    if stored is None or not stored.strip():
        return None
    try:
        return datetime.strptime(stored.strip(), fmt).date()
    except ValueError:
        return None


def parse_exam_date_range(
    start: str,
    end: str,
    fmt: str = TRANSFER_DATE_FORMAT,
) -> tuple[date, date]:
    """
    Parse an inclusive exam date range.

    Raises:
        InvalidExamDateError: Either bound does not match fmt.
        InvalidDateRangeError: start is after end.
    """
    first = parse_exam_date(start, fmt)
    last = parse_exam_date(end, fmt)
    if first > last:
        raise InvalidDateRangeError(start, end)
    return first, last
