"""Seed data generation.

SeedDataGenerator walks the requested phases in dependency order and, for
each entity type of a phase, creates the configured number of entities
through the API:

1. Resolve reference fields through the ReferentialIntegrityTracker
2. Reserve an arena id, build a Faker-backed candidate
3. Submit through the ValidationRetryEngine
4. Confirm the reservation with the backend id (or release it on failure)

Per-entity failures are recorded in the GenerationReport and never stop the
remaining entities, types or phases.
"""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import UTC, datetime
from functools import partial

import structlog

from seedline.backend import EntityApi, EntityStore
from seedline.config import VolumeConfiguration
from seedline.context import RunContext
from seedline.entities import EntityCatalog, EntityTypeSpec, SeedEntity
from seedline.errors import (
    DuplicateConstraintViolation,
    MissingReferenceError,
    SeedlineError,
    ValidationRejectedError,
)
from seedline.factories import FactorySet
from seedline.models import GenerationError, GenerationReport
from seedline.observability import span
from seedline.phases import PhaseDependencyGraph
from seedline.retry import ValidationRetryEngine

logger = structlog.get_logger(__name__)


class SeedDataGenerator:
    """Creates cross-referenced seed entities phase by phase.

    Args:
        api: Backend API used for creation.
        store: Backend store used to load existing records and count seeds.
        catalog: Entity catalog.
        graph: Phase dependency graph.
        context: Per-run state (identity registry, reference tracker).
        factories: Entity factories; defaults to a FactorySet over the catalog.
        retry_engine: Validation retry engine; defaults to the environment's
            ``max_retries`` bound.
        seed: Optional Faker seed, used when ``factories`` is not given.

    Example:
        >>> generator = SeedDataGenerator(backend, backend, EntityCatalog(),
        ...                               PhaseDependencyGraph(), RunContext(env))
        >>> report = generator.generate(["payroll"], VolumeConfiguration.from_preset("small"))
        >>> report.created_by_type["timesheet"]
        20
    """

    def __init__(
        self,
        api: EntityApi,
        store: EntityStore,
        catalog: EntityCatalog,
        graph: PhaseDependencyGraph,
        context: RunContext,
        *,
        factories: FactorySet | None = None,
        retry_engine: ValidationRetryEngine | None = None,
        seed: int | None = None,
    ) -> None:
        self.api = api
        self.store = store
        self.catalog = catalog
        self.graph = graph
        self.context = context
        self.factories = factories or FactorySet(catalog, context.registry, seed=seed)
        self.retry_engine = retry_engine or ValidationRetryEngine(
            api, max_retries=context.environment.max_retries
        )
        self.concurrency = context.environment.concurrency
        self._log = logger.bind(environment=context.environment.name, run_id=context.run_id)

    def generate(
        self,
        phases: Iterable[str],
        volume: VolumeConfiguration,
        *,
        incremental: bool = False,
    ) -> GenerationReport:
        """Generate seed data for the requested phases.

        Args:
            phases: Requested phase names, or ["all"].
            volume: Preset or explicit per-type counts.
            incremental: Reference existing seed records instead of only
                entities created in this run.

        Returns:
            GenerationReport with per-phase, per-type created counts and errors.

        Raises:
            UnknownPhaseError: If a requested phase is not declared.
            CyclicDependencyError: If the phase graph has a cycle.
            InvalidVolumeError: If the volume configuration is invalid.
        """
        started_at = datetime.now(UTC)
        order = self.graph.order(phases)
        targets = volume.resolve(self.catalog, [s.name for s in self.catalog.for_phases(order)])

        self._log.info(
            "generation_started",
            phases=order,
            incremental=incremental,
            requested=sum(targets.values()),
        )

        self._load_existing(incremental)
        seed_count_before = self._seed_count()
        self.context.mutating = True

        created: dict[str, dict[str, int]] = {}
        entities: list[str] = []
        errors: list[GenerationError] = []

        for phase in order:
            with span("generate_phase", attributes={"phase": phase}):
                created[phase] = {}
                for spec in self.catalog.for_phase(phase):
                    made, failed = self._generate_type(spec, targets.get(spec.name, 0))
                    created[phase][spec.name] = len(made)
                    entities.extend(entity.id for entity in made)
                    errors.extend(failed)

        report = GenerationReport(
            environment=self.context.environment.name,
            phases=order,
            incremental=incremental,
            requested=targets,
            created=created,
            entities=entities,
            errors=errors,
            seed_count_before=seed_count_before,
            seed_count_after=self._seed_count(),
            started_at=started_at,
            finished_at=datetime.now(UTC),
        )
        self._log.info(
            "generation_completed",
            created=report.created_total,
            errors=len(errors),
            seed_count_before=report.seed_count_before,
            seed_count_after=report.seed_count_after,
        )
        return report

    def _load_existing(self, incremental: bool) -> None:
        records = {spec.name: self.store.list_records(spec.name) for spec in self.catalog}
        self.context.registry.load(self.catalog, records)
        if not incremental:
            return
        for spec in self.catalog:
            existing = self.context.registry.preexisting_seed_ids(spec.name)
            if existing:
                self.context.tracker.seed_existing(spec.name, existing)
                self._log.debug(
                    "existing_seed_records_referenced", entity_type=spec.name, count=len(existing)
                )

    def _seed_count(self) -> int:
        return sum(self.store.count(spec.name, is_seed_data=True) for spec in self.catalog)

    def _generate_type(
        self, spec: EntityTypeSpec, count: int
    ) -> tuple[list[SeedEntity], list[GenerationError]]:
        if count == 0:
            return [], []

        log = self._log.bind(entity_type=spec.name, phase=spec.phase)
        missing = self._missing_required_reference(spec)
        if missing is not None:
            log.warning("entity_type_skipped", error=str(missing), requested=count)
            return [], [_error_record(spec, missing)]

        made: list[SeedEntity] = []
        failed: list[GenerationError] = []

        if self.concurrency > 1 and count > 1:
            with ThreadPoolExecutor(max_workers=min(self.concurrency, count)) as pool:
                futures = [pool.submit(self.create_entity, spec) for _ in range(count)]
                for future in as_completed(futures):
                    try:
                        made.append(future.result())
                    except SeedlineError as exc:
                        failed.append(_error_record(spec, exc))
        else:
            for _ in range(count):
                try:
                    made.append(self.create_entity(spec))
                except SeedlineError as exc:
                    failed.append(_error_record(spec, exc))

        log.info("entity_type_generated", requested=count, created=len(made), failed=len(failed))
        return made, failed

    def _missing_required_reference(self, spec: EntityTypeSpec) -> MissingReferenceError | None:
        for field, ref in spec.references.items():
            if ref.required and self.context.tracker.available(ref.target) == 0:
                return MissingReferenceError(spec.name, field, ref.target)
        return None

    def resolve_references(self, spec: EntityTypeSpec) -> dict[str, str]:
        """Pick reference targets for one new entity.

        Optional references are omitted when no target exists.

        Raises:
            MissingReferenceError: If a required reference has no target.
        """
        references: dict[str, str] = {}
        for field, ref in spec.references.items():
            target_id = self.context.tracker.resolve(ref.target, spec.phase)
            if target_id is not None:
                references[field] = target_id
            elif ref.required:
                raise MissingReferenceError(spec.name, field, ref.target)
        return references

    def create_entity(self, spec: EntityTypeSpec) -> SeedEntity:
        """Create one entity of a type.

        Raises:
            SeedlineError: On a reference, uniqueness or validation failure.
        """
        tracker = self.context.tracker
        references = self.resolve_references(spec)
        reservation = tracker.reserve(spec.name)

        try:
            payload = self.factories.build(spec.name, references)
            submission = self.retry_engine.submit(
                spec.name,
                payload,
                regenerate=partial(self.factories.regenerate, spec.name),
                protected_fields=frozenset(references),
            )
        except SeedlineError:
            tracker.release(reservation)
            raise

        entity_id = submission.entity_id
        if not submission.accepted or entity_id is None:
            tracker.release(reservation)
            raise submission.error or SeedlineError(f"Failed to create {spec.name}")

        tracker.confirm(reservation, entity_id)
        self._log.debug(
            "entity_created",
            entity_type=spec.name,
            entity_id=entity_id,
            arena_id=reservation.arena_id,
            attempts=submission.attempts,
        )
        return SeedEntity(
            id=entity_id,
            entity_type=spec.name,
            phase=spec.phase,
            reference_fields=references,
            attributes=submission.candidate,
        )


def _error_record(spec: EntityTypeSpec, exc: SeedlineError) -> GenerationError:
    fields: list[str] = []
    attempts = 0
    if isinstance(exc, ValidationRejectedError):
        fields = exc.fields
        attempts = exc.attempts
    elif isinstance(exc, (MissingReferenceError, DuplicateConstraintViolation)):
        fields = [exc.field]
    return GenerationError(
        entity_type=spec.name,
        phase=spec.phase,
        message=str(exc),
        fields=fields,
        attempts=attempts,
    )
