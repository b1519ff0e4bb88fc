"""
Module: production_engines.sequencing
Responsibility:
    Resolve the process that immediately precedes a given process within a
    project's custom process order.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Reads an immutable ProcessCatalogSnapshot; never touches the database.

Rules, in priority order:
    1. Override: the binding process is always preceded by the cutting
       process, whatever the catalog or project order says.
    2. An unknown current process has no predecessor.
    3. Independent process: the process named by its range_start.
    4. Dependent process:
       a. when some process X feeds into it (X.range_end == current id) and
          X is in the project's order, walk backward from the current slot
          (seq-1, seq-2, ... while a slot is occupied) and take the first
          Dependent process;
       b. otherwise, or when the walk finds nothing, the process at
          sequence - 1.
       When (a) wins and (b) disagrees, the disagreement is reported as a
       configuration warning; (a) keeps priority.

Invariants enforced:
    - Lock-free: the resolver holds a reference to one snapshot and reads it
      only.
    - Missing lookups degrade to "no predecessor"; only strict mode raises.

Failure modes:
    - AmbiguousProcessConfigurationError in strict mode when rules 4a and 4b
      disagree.
"""

from __future__ import annotations

from production_engines.tracer import traced_engine
from production_kernel.domain.dtos import PredecessorResolution
from production_kernel.domain.process_catalog import (
    ProcessCatalogSnapshot,
    ProcessDefinition,
)
from production_kernel.exceptions import AmbiguousProcessConfigurationError
from production_kernel.logging_config import get_logger

logger = get_logger("engines.sequencing")

DEFAULT_BINDING_PROCESS_ID = 4
DEFAULT_CUTTING_PROCESS_ID = 2

RULE_OVERRIDE = "override"
RULE_UNKNOWN_PROCESS = "unknown_process"
RULE_INDEPENDENT = "independent"
RULE_DEPENDENT_WALK = "dependent_walk"
RULE_SEQUENCE = "sequence"
RULE_NONE = "none"


class PreviousProcessResolver:
    """
    Predecessor lookup over one catalog snapshot.

    Contract:
        ``resolve`` is a pure function of (snapshot, project_id,
        current_process_id, strict).
    Guarantees:
        - Safe to call from any number of threads concurrently.
        - The override applies even when the binding process is absent
          from the catalog.
    Non-goals:
        - Does not validate the catalog; inconsistent configuration
          surfaces as warnings.
    """

    def __init__(
        self,
        catalog: ProcessCatalogSnapshot,
        binding_process_id: int = DEFAULT_BINDING_PROCESS_ID,
        cutting_process_id: int = DEFAULT_CUTTING_PROCESS_ID,
    ):
        self._catalog = catalog
        self._binding_process_id = binding_process_id
        self._cutting_process_id = cutting_process_id

    @property
    def catalog(self) -> ProcessCatalogSnapshot:
        return self._catalog

    @traced_engine(
        "sequencing", "1.0",
        fingerprint_fields=("project_id", "current_process_id", "strict"),
    )
    def resolve(
        self,
        project_id: int,
        current_process_id: int,
        strict: bool = False,
    ) -> PredecessorResolution:
        """
        Resolve the predecessor of ``current_process_id`` in ``project_id``.

        Raises:
            AmbiguousProcessConfigurationError: strict mode only, when the
                dependent walk and the plain sequence rule disagree.
        """
        catalog = self._catalog

        if current_process_id == self._binding_process_id:
            cutting = catalog.process(self._cutting_process_id)
            return self._result(project_id, current_process_id, cutting, RULE_OVERRIDE)

        current = catalog.process(current_process_id)
        if current is None:
            return self._result(project_id, current_process_id, None, RULE_UNKNOWN_PROCESS)

        if not current.is_dependent:
            start = catalog.process(current.range_start)
            return self._result(project_id, current_process_id, start, RULE_INDEPENDENT)

        sequence = catalog.sequence_of(project_id, current_process_id)
        by_sequence = self._previous_in_sequence(project_id, sequence)
        by_walk = None
        if sequence is not None and self._has_feeder_in_order(project_id, current_process_id):
            by_walk = self._walk_to_dependent(project_id, sequence)

        if by_walk is None:
            rule = RULE_SEQUENCE if by_sequence is not None else RULE_NONE
            return self._result(project_id, current_process_id, by_sequence, rule)

        warnings: tuple[str, ...] = ()
        sequence_id = by_sequence.id if by_sequence is not None else None
        if sequence_id != by_walk.id:
            sequence_name = by_sequence.name if by_sequence is not None else None
            if strict:
                raise AmbiguousProcessConfigurationError(
                    project_id, current_process_id, by_walk.name, sequence_name
                )
            warnings = (
                f"process {current_process_id} in project {project_id}: "
                f"dependent walk selects {by_walk.id} ({by_walk.name}), "
                f"sequence selects {sequence_id} ({sequence_name})",
            )
            logger.warning("process_predecessor_divergence", extra={
                "project_id": project_id,
                "process_id": current_process_id,
                "dependent_walk_process_id": by_walk.id,
                "sequence_process_id": sequence_id,
            })

        return self._result(
            project_id, current_process_id, by_walk, RULE_DEPENDENT_WALK, warnings
        )

    def previous_process_name(
        self,
        project_id: int,
        current_process_id: int,
        strict: bool = False,
    ) -> str | None:
        return self.resolve(project_id, current_process_id, strict=strict).process_name

    # -- internals ---------------------------------------------------------

    def _has_feeder_in_order(self, project_id: int, process_id: int) -> bool:
        return any(
            self._catalog.in_order(project_id, feeder.id)
            for feeder in self._catalog.feeders_of(process_id)
        )

    def _walk_to_dependent(
        self, project_id: int, sequence: int
    ) -> ProcessDefinition | None:
        slot = sequence - 1
        while True:
            process_id = self._catalog.process_at(project_id, slot)
            if process_id is None:
                # Walk stops at the first empty slot
                return None
            candidate = self._catalog.process(process_id)
            if candidate is not None and candidate.is_dependent:
                return candidate
            slot -= 1

    def _previous_in_sequence(
        self, project_id: int, sequence: int | None
    ) -> ProcessDefinition | None:
        if sequence is None:
            return None
        return self._catalog.process(self._catalog.process_at(project_id, sequence - 1))

    @staticmethod
    def _result(
        project_id: int,
        current_process_id: int,
        process: ProcessDefinition | None,
        rule: str,
        warnings: tuple[str, ...] = (),
    ) -> PredecessorResolution:
        return PredecessorResolution(
            project_id=project_id,
            current_process_id=current_process_id,
            process_id=process.id if process is not None else None,
            process_name=process.name if process is not None else None,
            rule=rule,
            configuration_warnings=warnings,
        )
