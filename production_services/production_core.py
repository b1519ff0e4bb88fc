"""
production_services.production_core -- Transactional facade over the production kernel.

Responsibility:
    The external interface of the production core.  Wires configuration,
    the session factory, the lot lock registry and the process catalog
    cache together, and runs every kernel operation inside one transaction
    with the right lots locked.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    The only layer that opens transactions (session_scope) and the only
    layer that reads production_config.

Invariants enforced:
    - Atomicity: each mutating call is one transaction.  Commit on success,
      rollback on any error; a failed recompute therefore undoes the
      mutation that triggered it.
    - Per-lot serialization: lot locks are taken before the transaction
      opens and released after it commits, so no other thread in this
      process can read a lot between its write and its commit.
    - Fixed lock order for two-lot transfers (LotLockRegistry).
    - The resolver reads a catalog snapshot without locks.

Failure modes:
    - Every ProductionKernelError raised by the kernel propagates unchanged
      after the rollback.
    - LotLockTimeoutError when a lot stays busy past the configured timeout.
    - ConcurrencyError when a catch keeps moving between lots, or the lots
      matching a re-lot range keep changing, while this call is trying to
      lock them.

Usage:
    from production_services import ProductionCore

    core = ProductionCore.from_config()
    core.add_catches(project_id, [CatchSpec(catch_no="C1", lot_no="1", quantity=30)])
    core.toggle_stop(catch_id)
    core.resolve_previous_process(project_id, current_process_id=7)
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Iterable, Sequence
from contextlib import contextmanager
from decimal import Decimal
from typing import TypeVar

from sqlalchemy.orm import Session, sessionmaker

from production_config import ProductionConfig, get_active_config
from production_engines.sequencing import PreviousProcessResolver
from production_engines.series import expand_for_series
from production_kernel.db.engine import (
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from production_kernel.domain.dtos import (
    CatchInfo,
    CatchUpsertResult,
    ExpandedCatch,
    LotDateRange,
    LotShares,
    PredecessorResolution,
    RelotResult,
    StopToggleResult,
    TransferResult,
)
from production_kernel.domain.exam_dates import parse_exam_date_range, to_display_date
from production_kernel.domain.process_catalog import (
    ProcessCatalogCache,
    ProcessCatalogSnapshot,
)
from production_kernel.domain.values import CatchSpec, LotKey
from production_kernel.exceptions import CatchNotFoundError, ConcurrencyError
from production_kernel.logging_config import LogContext, configure_logging, get_logger
from production_kernel.selectors.process_selector import ProcessSelector
from production_kernel.selectors.quantity_sheet_selector import QuantitySheetSelector
from production_kernel.services.lot_lock_registry import LotLockRegistry
from production_kernel.services.process_assignment import CatchProcessAssigner
from production_kernel.services.quantity_allocation_service import (
    QuantityAllocationService,
)

logger = get_logger("services.production_core")

T = TypeVar("T")

# A catch can be transferred between lookup and lock; retry this many times
_MAX_CATCH_LOCK_ATTEMPTS = 3


class ProductionCore:
    """
    Facade for catch allocation and process sequencing.

    Contract:
        Receives a session factory and a ProductionConfig.  Owns one
        LotLockRegistry and one ProcessCatalogCache; share a single
        ProductionCore between threads to get in-process serialization.

    Guarantees:
        - Every mutating method commits exactly once or not at all.
        - Results are frozen DTOs, safe to use after the session closes.

    Non-goals:
        - Cross-process serialization beyond the row locks taken by the
          kernel service (effective on PostgreSQL).
        - Retrying failed operations.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        config: ProductionConfig | None = None,
        lock_registry: LotLockRegistry | None = None,
        catalog_cache: ProcessCatalogCache | None = None,
        assigner_factory: Callable[[Session], CatchProcessAssigner] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.config = config or ProductionConfig()
        self.locks = lock_registry or LotLockRegistry(
            timeout_seconds=self.config.lot_lock_timeout_seconds
        )
        self.catalog = catalog_cache or ProcessCatalogCache(self._load_catalog)
        self._assigner_factory = assigner_factory

    @classmethod
    def from_config(cls, config: ProductionConfig | None = None) -> ProductionCore:
        """Initialize logging and the database engine from configuration."""
        config = config or get_active_config()
        configure_logging(level=config.log_level.upper())
        init_engine_from_url(config.database_url)
        return cls(get_session_factory(), config)

    # -- plumbing ----------------------------------------------------------

    def _service(self, session: Session) -> QuantityAllocationService:
        assigner = self._assigner_factory(session) if self._assigner_factory else None
        return QuantityAllocationService(
            session,
            assigner=assigner,
            booklet_type_name=self.config.booklet_type_name,
            transfer_date_format=self.config.transfer_date_format,
            stored_date_format=self.config.stored_date_format,
        )

    @contextmanager
    def _locked_transaction(
        self, keys: Iterable[LotKey]
    ) -> Generator[Session, None, None]:
        with self.locks.hold(keys):
            with session_scope(self._session_factory) as session:
                yield session

    @contextmanager
    def _read_session(self) -> Generator[Session, None, None]:
        with session_scope(self._session_factory) as session:
            yield session

    def _catch_lot(self, catch_id: int) -> LotKey:
        with self._read_session() as session:
            info = QuantitySheetSelector(session).get_catch(catch_id)
        if info is None:
            raise CatchNotFoundError(str(catch_id))
        return LotKey(info.project_id, info.lot_no)

    def _run_for_catch(
        self,
        catch_id: int,
        operation: Callable[[QuantityAllocationService], T],
    ) -> T:
        """Run ``operation`` with the catch's current lot locked."""
        for _ in range(_MAX_CATCH_LOCK_ATTEMPTS):
            key = self._catch_lot(catch_id)
            with LogContext.bind(project_id=key.project_id, lot_no=key.lot_no):
                with self._locked_transaction([key]) as session:
                    current = QuantitySheetSelector(session).get_catch(catch_id)
                    if current is None:
                        raise CatchNotFoundError(str(catch_id))
                    if current.lot_no == key.lot_no:
                        return operation(self._service(session))
            logger.info("catch_moved_before_lock", extra={
                "catch_id": catch_id,
                "locked_lot": key.lot_no,
            })
        raise ConcurrencyError(
            f"Catch {catch_id} moved between lots {_MAX_CATCH_LOCK_ATTEMPTS} times "
            "while waiting for its lot lock"
        )

    def _load_catalog(self) -> ProcessCatalogSnapshot:
        with self._read_session() as session:
            return ProcessSelector(session).load_catalog()

    # -- allocator ---------------------------------------------------------

    def expand_for_series(
        self,
        catches: Sequence[CatchSpec],
        series_count: int,
        should_cancel: Callable[[], bool] | None = None,
    ) -> list[ExpandedCatch]:
        """Stage series variants without touching the database."""
        return list(expand_for_series(catches, series_count, should_cancel=should_cancel))

    def recompute_shares(self, project_id: int, lot_no: str) -> LotShares:
        key = LotKey(project_id, lot_no)
        with LogContext.bind(project_id=project_id, lot_no=lot_no):
            with self._locked_transaction([key]) as session:
                return self._service(session).recompute_shares(project_id, lot_no)

    def add_catches(
        self,
        project_id: int,
        catches: Sequence[CatchSpec],
        should_cancel: Callable[[], bool] | None = None,
    ) -> tuple[CatchInfo, ...]:
        keys = [LotKey(project_id, c.lot_no.strip()) for c in catches if c.has_lot]
        with LogContext.bind(project_id=project_id):
            with self._locked_transaction(keys) as session:
                return self._service(session).add_catches(
                    project_id, catches, should_cancel=should_cancel
                )

    def upsert_catches(
        self,
        project_id: int,
        catches: Sequence[CatchSpec],
        should_cancel: Callable[[], bool] | None = None,
    ) -> CatchUpsertResult:
        keys = [LotKey(project_id, c.lot_no.strip()) for c in catches if c.has_lot]
        with LogContext.bind(project_id=project_id):
            with self._locked_transaction(keys) as session:
                return self._service(session).upsert_catches(
                    project_id, catches, should_cancel=should_cancel
                )

    def update_catch_quantity(
        self, catch_id: int, quantity: Decimal | int | str
    ) -> LotShares:
        return self._run_for_catch(
            catch_id, lambda service: service.update_catch_quantity(catch_id, quantity)
        )

    def toggle_stop(self, catch_id: int) -> StopToggleResult:
        return self._run_for_catch(
            catch_id, lambda service: service.toggle_stop(catch_id)
        )

    def transfer_catches(
        self,
        project_id: int,
        source_lot: str,
        target_lot: str,
        catch_nos: Sequence[str],
        new_exam_date: str | None = None,
    ) -> TransferResult:
        keys = [
            LotKey(project_id, lot.strip())
            for lot in (source_lot, target_lot)
            if lot and lot.strip()
        ]
        with LogContext.bind(project_id=project_id):
            with self._locked_transaction(keys) as session:
                return self._service(session).transfer_catches(
                    project_id, source_lot, target_lot, catch_nos, new_exam_date
                )

    def relot_by_exam_date(
        self,
        project_id: int,
        start_date: str,
        end_date: str,
        new_lot_no: str,
    ) -> RelotResult:
        """
        Move every catch with an exam date in the range into new_lot_no.

        The lots to lock are read first and checked again under the lock; a
        lot that gained a matching row in between causes a retry.
        """
        first, last = parse_exam_date_range(
            start_date, end_date, self.config.transfer_date_format
        )
        target = (new_lot_no or "").strip()
        stored_format = self.config.stored_date_format
        for _ in range(_MAX_CATCH_LOCK_ATTEMPTS):
            with self._read_session() as session:
                lots = QuantitySheetSelector(session).lots_with_exam_dates_between(
                    project_id, first, last, stored_format
                )
            keys = {LotKey(project_id, lot_no) for lot_no in lots}
            if target:
                keys.add(LotKey(project_id, target))
            with LogContext.bind(project_id=project_id, lot_no=target or None):
                with self._locked_transaction(keys) as session:
                    current = QuantitySheetSelector(session).lots_with_exam_dates_between(
                        project_id, first, last, stored_format
                    )
                    if set(current) <= set(lots):
                        return self._service(session).relot_by_exam_date(
                            project_id, start_date, end_date, new_lot_no
                        )
            logger.info("relot_lots_changed_before_lock", extra={
                "project_id": project_id,
                "locked_lots": sorted(lots),
            })
        raise ConcurrencyError(
            f"Lots with exam dates in {start_date}..{end_date} changed "
            f"{_MAX_CATCH_LOCK_ATTEMPTS} times while waiting for their lot locks"
        )

    def delete_catch(self, catch_id: int) -> LotShares | None:
        return self._run_for_catch(
            catch_id, lambda service: service.delete_catch(catch_id)
        )

    def delete_lot(self, project_id: int, lot_no: str) -> int:
        with LogContext.bind(project_id=project_id, lot_no=lot_no):
            with self._locked_transaction([LotKey(project_id, lot_no)]) as session:
                return self._service(session).delete_lot(project_id, lot_no)

    def release_lot(self, project_id: int, lot_no: str) -> int:
        with LogContext.bind(project_id=project_id, lot_no=lot_no):
            with self._locked_transaction([LotKey(project_id, lot_no)]) as session:
                return self._service(session).release_lot(project_id, lot_no)

    # -- reads -------------------------------------------------------------

    def list_lots(self, project_id: int, released: bool | None = None) -> list[str]:
        """
        Numeric lots (released=None), or lots with any released row
        (released=True) or any unreleased row (released=False).
        """
        with self._read_session() as session:
            selector = QuantitySheetSelector(session)
            if released is None:
                return selector.lots(project_id)
            if released:
                return selector.released_lots(project_id)
            return selector.unreleased_lots(project_id)

    def lot_catches(self, project_id: int, lot_no: str) -> tuple[CatchInfo, ...]:
        with self._read_session() as session:
            return QuantitySheetSelector(session).lot_rows(project_id, lot_no)

    def exam_dates(self, project_id: int, lot_no: str | None = None) -> list[str]:
        """Distinct exam dates, formatted for display."""
        with self._read_session() as session:
            stored = QuantitySheetSelector(session).exam_dates(project_id, lot_no)
        return [
            to_display_date(
                d, self.config.stored_date_format, self.config.display_date_format
            )
            for d in stored
        ]

    def lot_date_ranges(self, project_id: int) -> dict[str, LotDateRange]:
        """First and last exam date of every dated lot, formatted for display."""
        with self._read_session() as session:
            ranges = QuantitySheetSelector(session).lot_date_ranges(
                project_id, self.config.stored_date_format
            )

        def display(stored: str | None) -> str | None:
            if stored is None:
                return None
            return to_display_date(
                stored, self.config.stored_date_format, self.config.display_date_format
            )

        return {
            r.lot_no: LotDateRange(
                lot_no=r.lot_no,
                first_exam_date=display(r.first_exam_date),
                last_exam_date=display(r.last_exam_date),
            )
            for r in ranges
        }

    # -- resolver ----------------------------------------------------------

    def refresh_catalog(self) -> ProcessCatalogSnapshot:
        snapshot = self.catalog.refresh()
        logger.info("process_catalog_refreshed", extra={
            "catalog_version": snapshot.version,
        })
        return snapshot

    def _resolver(self) -> PreviousProcessResolver:
        return PreviousProcessResolver(
            self.catalog.current(),
            binding_process_id=self.config.binding_process_id,
            cutting_process_id=self.config.cutting_process_id,
        )

    def resolve_predecessor(
        self,
        project_id: int,
        current_process_id: int,
        strict: bool = False,
    ) -> PredecessorResolution:
        return self._resolver().resolve(project_id, current_process_id, strict=strict)

    def resolve_previous_process(
        self,
        project_id: int,
        current_process_id: int,
        strict: bool = False,
    ) -> str | None:
        return self.resolve_predecessor(
            project_id, current_process_id, strict=strict
        ).process_name

