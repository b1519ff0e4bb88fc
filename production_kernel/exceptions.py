"""
Typed Exception Hierarchy for the Production Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The request-handling layer above the kernel maps failures to responses.
It must be able to do that without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        core.transfer_catches(project_id, "1", "2", ["C-01"])
    except SameLotTransferError as e:
        api_response(code=e.code, lot=e.lot_no)
    except ValidationError as e:
        api_response(code=e.code, detail=str(e))

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ProductionKernelError (base)
    |
    +-- ValidationError
    |   +-- MissingLotNumberError
    |   +-- InvalidExamDateError
    |   +-- EmptyCatchSetError
    |   +-- SameLotTransferError
    |   +-- InvalidQuantityError
    |   +-- InvalidSeriesCountError
    |   +-- UnknownCatchFieldError
    |   +-- DuplicateCatchError
    |   +-- InvalidLotNumberError
    |   +-- InvalidDateRangeError
    |
    +-- NotFoundError
    |   +-- CatchNotFoundError
    |   +-- LotNotFoundError
    |   +-- ProjectNotFoundError
    |   +-- ProcessNotFoundError
    |   +-- NoCatchesInRangeError
    |
    +-- AllocationError
    |   +-- ZeroQuantityLotError
    |   +-- AllocationCancelledError
    |
    +-- SequenceError
    |   +-- AmbiguousProcessConfigurationError
    |
    +-- ConcurrencyError
        +-- LotLockTimeoutError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | MISSING_LOT_NUMBER          | Catch submitted without a lot number
                | INVALID_EXAM_DATE           | Transfer date is not dd-MM-yyyy
                | EMPTY_CATCH_SET             | No catches / catch numbers supplied
                | SAME_LOT_TRANSFER           | Transfer source lot == target lot
                | INVALID_QUANTITY            | Negative or non-numeric quantity
                | INVALID_SERIES_COUNT        | Negative series count
                | UNKNOWN_CATCH_FIELD         | Field registry lookup miss
                | DUPLICATE_CATCH             | Catch number already present in the lot
                | INVALID_LOT_NUMBER          | Re-lot target is not a numeric lot
                | INVALID_DATE_RANGE          | Date range starts after it ends
----------------|-----------------------------|-----------------------------------------
Not found       | CATCH_NOT_FOUND             | Catch id / catch number absent
                | LOT_NOT_FOUND               | Lot has no rows
                | PROJECT_NOT_FOUND           | Project id absent
                | PROCESS_NOT_FOUND           | Process id absent
                | NO_CATCHES_IN_RANGE         | No catch has an exam date in the range
----------------|-----------------------------|-----------------------------------------
Allocation      | ZERO_QUANTITY_LOT           | Active total quantity of a lot is zero
                | ALLOCATION_CANCELLED        | Expansion cancelled between catches
----------------|-----------------------------|-----------------------------------------
Sequence        | AMBIGUOUS                   | Predecessor rules disagree (strict mode)
----------------|-----------------------------|-----------------------------------------
Concurrency     | LOT_LOCK_TIMEOUT            | Lot critical section not acquired in time

None of these are retried inside the kernel.  Retry policy for transient
storage failures belongs to the persistence layer.
"""


class ProductionKernelError(Exception):
    """
    Base exception for all production kernel errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "PRODUCTION_KERNEL_ERROR"


# Validation exceptions


class ValidationError(ProductionKernelError):
    """Base exception for malformed input."""

    code: str = "VALIDATION_ERROR"


class MissingLotNumberError(ValidationError):
    """A catch was submitted without a lot number."""

    code: str = "MISSING_LOT_NUMBER"

    def __init__(self, catch_no: str | None = None):
        self.catch_no = catch_no
        if catch_no is None:
            super().__init__("The lot number is required")
        else:
            super().__init__(f"The lot number is required for catch {catch_no!r}")


class InvalidExamDateError(ValidationError):
    """Exam date string does not match the expected external format."""

    code: str = "INVALID_EXAM_DATE"

    def __init__(self, value: str, expected_format: str):
        self.value = value
        self.expected_format = expected_format
        super().__init__(
            f"Invalid exam date {value!r}: expected format {expected_format}"
        )


class EmptyCatchSetError(ValidationError):
    """An operation that needs at least one catch received none."""

    code: str = "EMPTY_CATCH_SET"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"No catches supplied for {operation}")


class SameLotTransferError(ValidationError):
    """Transfer source and target lots are the same."""

    code: str = "SAME_LOT_TRANSFER"

    def __init__(self, lot_no: str):
        self.lot_no = lot_no
        super().__init__(f"Source and target lots cannot be the same: {lot_no}")


class InvalidQuantityError(ValidationError):
    """Quantity is negative or not a number."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, catch_no: str, quantity: str):
        self.catch_no = catch_no
        self.quantity = quantity
        super().__init__(f"Invalid quantity {quantity} for catch {catch_no!r}")


class InvalidSeriesCountError(ValidationError):
    """Series count is negative."""

    code: str = "INVALID_SERIES_COUNT"

    def __init__(self, series_count: int):
        self.series_count = series_count
        super().__init__(f"Series count must be >= 0, got {series_count}")


class UnknownCatchFieldError(ValidationError):
    """Field name is not registered in the catch field registry."""

    code: str = "UNKNOWN_CATCH_FIELD"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Unknown catch field: {field_name!r}")


class DuplicateCatchError(ValidationError):
    """
    A catch number would appear twice in one lot.

    A lot holds at most one group of rows per catch number; stop toggles,
    quantity edits and merges address the whole group by that number.
    """

    code: str = "DUPLICATE_CATCH"

    def __init__(self, project_id: int, lot_no: str, catch_no: str):
        self.project_id = project_id
        self.lot_no = lot_no
        self.catch_no = catch_no
        super().__init__(
            f"Catch {catch_no!r} already exists in lot {lot_no} of project {project_id}"
        )


class InvalidLotNumberError(ValidationError):
    """Lot label is not a numeric lot number."""

    code: str = "INVALID_LOT_NUMBER"

    def __init__(self, lot_no: str):
        self.lot_no = lot_no
        super().__init__(f"Invalid lot number {lot_no!r}: must be an integer")


class InvalidDateRangeError(ValidationError):
    """Date range starts after it ends."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, start: str, end: str):
        self.start = start
        self.end = end
        super().__init__(f"Date range start {start} is after its end {end}")


# Not-found exceptions


class NotFoundError(ProductionKernelError):
    """Base exception for missing referenced entities."""

    code: str = "NOT_FOUND"


class CatchNotFoundError(NotFoundError):
    """Catch id or catch number does not exist where it was expected."""

    code: str = "CATCH_NOT_FOUND"

    def __init__(self, catch_ref: str, lot_no: str | None = None):
        self.catch_ref = catch_ref
        self.lot_no = lot_no
        if lot_no is None:
            super().__init__(f"Catch not found: {catch_ref}")
        else:
            super().__init__(f"Catch {catch_ref} not found in lot {lot_no}")


class LotNotFoundError(NotFoundError):
    """No rows exist for the project and lot."""

    code: str = "LOT_NOT_FOUND"

    def __init__(self, project_id: int, lot_no: str):
        self.project_id = project_id
        self.lot_no = lot_no
        super().__init__(f"No catches found for project {project_id}, lot {lot_no}")


class ProjectNotFoundError(NotFoundError):
    """Project id does not exist."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class ProcessNotFoundError(NotFoundError):
    """Process id does not exist in the catalog."""

    code: str = "PROCESS_NOT_FOUND"

    def __init__(self, process_id: int):
        self.process_id = process_id
        super().__init__(f"Process not found: {process_id}")


class NoCatchesInRangeError(NotFoundError):
    """No catch of the project has an exam date inside the range."""

    code: str = "NO_CATCHES_IN_RANGE"

    def __init__(self, project_id: int, start: str, end: str):
        self.project_id = project_id
        self.start = start
        self.end = end
        super().__init__(
            f"No catches of project {project_id} have an exam date "
            f"between {start} and {end}"
        )


# Allocation exceptions


class AllocationError(ProductionKernelError):
    """Base exception for share and quantity allocation failures."""

    code: str = "ALLOCATION_ERROR"


class ZeroQuantityLotError(AllocationError):
    """
    Active total quantity of a lot is zero.

    Percentage shares cannot be computed.  The triggering mutation must
    not be committed.
    """

    code: str = "ZERO_QUANTITY_LOT"

    def __init__(self, project_id: int | None, lot_no: str):
        self.project_id = project_id
        self.lot_no = lot_no
        super().__init__(
            f"Total quantity for lot {lot_no} is zero, cannot calculate percentages"
        )


class AllocationCancelledError(AllocationError):
    """Series expansion was cancelled before completion."""

    code: str = "ALLOCATION_CANCELLED"

    def __init__(self, processed: int, total: int):
        self.processed = processed
        self.total = total
        super().__init__(
            f"Allocation cancelled after {processed} of {total} catches"
        )


# Sequence exceptions


class SequenceError(ProductionKernelError):
    """Base exception for process sequencing errors."""

    code: str = "SEQUENCE_ERROR"


class AmbiguousProcessConfigurationError(SequenceError):
    """
    Predecessor rules disagree for a process.

    Only raised in strict resolution mode; the default mode records the
    divergence as a configuration warning instead.
    """

    code: str = "AMBIGUOUS"

    def __init__(
        self,
        project_id: int,
        process_id: int,
        dependent_walk_name: str | None,
        sequence_name: str | None,
    ):
        self.project_id = project_id
        self.process_id = process_id
        self.dependent_walk_name = dependent_walk_name
        self.sequence_name = sequence_name
        super().__init__(
            f"Ambiguous predecessor for process {process_id} in project "
            f"{project_id}: dependent walk gives {dependent_walk_name!r}, "
            f"sequence gives {sequence_name!r}"
        )


# Concurrency exceptions


class ConcurrencyError(ProductionKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class LotLockTimeoutError(ConcurrencyError):
    """A lot critical section could not be entered within the timeout."""

    code: str = "LOT_LOCK_TIMEOUT"

    def __init__(self, project_id: int, lot_no: str, timeout_seconds: float):
        self.project_id = project_id
        self.lot_no = lot_no
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Timed out after {timeout_seconds}s waiting for lot "
            f"{lot_no} of project {project_id}"
        )
