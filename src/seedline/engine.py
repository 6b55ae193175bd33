"""Operation surface.

SeedEngine runs every operation the same way:

1. Resolve and validate inputs (phases, volume, scope, confirmation)
2. Run the connectivity gate; abort if API or database is unreachable
3. Perform the operation inside a fresh RunContext

and maps the result to an OperationOutcome: ``success``,
``completed_with_failures`` (per-item failures were recorded, or the backend
failed after the run started writing) or ``aborted`` (nothing was changed).
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

import structlog

from seedline.backend import EntityApi, EntityStore, HttpBackend
from seedline.config import ConfigurationManager, EnvironmentConfig, VolumeConfiguration
from seedline.connectivity import ConnectivityValidator
from seedline.context import RunContext
from seedline.entities import EntityCatalog
from seedline.errors import OperationAbortedError, SeedlineError
from seedline.factories import FactorySet
from seedline.generator import SeedDataGenerator
from seedline.integration.coverage import CoverageTracker
from seedline.integration.endpoints import WORKFLOW_ENDPOINTS, EndpointRegistry, crud_endpoints
from seedline.integration.runner import IntegrationTest, IntegrationTestRunner
from seedline.integration.suites import build_suites
from seedline.integrity import IntegrityChecker
from seedline.management import CLEANUP, RESET, DataManagementService
from seedline.models import (
    CleanupReport,
    GenerationReport,
    IntegrityReport,
    OperationOutcome,
    OperationResult,
    StatusReport,
    TestRunReport,
)
from seedline.observability import span
from seedline.phases import ALL_PHASES, PhaseDependencyGraph

logger = structlog.get_logger(__name__)

TOKEN_ENV_VAR = "SEEDLINE_API_TOKEN"

Report = GenerationReport | CleanupReport | TestRunReport | StatusReport | IntegrityReport


class SeedEngine:
    """Generate, test, clean up and inspect seed data in one environment.

    Args:
        environment: Resolved environment configuration.
        api: Backend API.
        store: Backend store.
        catalog: Entity catalog.
        graph: Phase dependency graph.
        validator: Connectivity validator.
        seed: Optional Faker seed for reproducible data.

    Example:
        >>> with SeedEngine.connect("development") as engine:
        ...     result = engine.generate(["payroll"])
        >>> result.exit_code
        0
    """

    def __init__(
        self,
        environment: EnvironmentConfig,
        api: EntityApi,
        store: EntityStore,
        *,
        catalog: EntityCatalog | None = None,
        graph: PhaseDependencyGraph | None = None,
        validator: ConnectivityValidator | None = None,
        seed: int | None = None,
    ) -> None:
        self.environment = environment
        self.api = api
        self.store = store
        self.catalog = catalog or EntityCatalog()
        self.graph = graph or PhaseDependencyGraph()
        self.validator = validator or ConnectivityValidator()
        self.seed = seed
        self._closers: list[Callable[[], None]] = []
        self._log = logger.bind(environment=environment.name)

    @classmethod
    def connect(
        cls,
        environment: str | None = None,
        *,
        manager: ConfigurationManager | None = None,
        environ: Mapping[str, str] | None = None,
        catalog: EntityCatalog | None = None,
        **kwargs: Any,
    ) -> SeedEngine:
        """Build an engine over the HTTP backend of a named environment.

        Raises:
            UnknownEnvironmentError: If the environment is not registered.
        """
        environ = environ if environ is not None else os.environ
        manager = manager or ConfigurationManager(environ=environ)
        env = manager.resolve(environment)
        catalog = catalog or EntityCatalog()

        headers: dict[str, str] = {}
        token = environ.get(TOKEN_ENV_VAR)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        backend = HttpBackend(env, catalog, headers=headers)
        engine = cls(env, backend, backend, catalog=catalog, **kwargs)
        engine._closers.append(backend.close)
        return engine

    def __enter__(self) -> SeedEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        while self._closers:
            self._closers.pop()()

    def new_context(self) -> RunContext:
        endpoints = EndpointRegistry([*crud_endpoints(self.catalog), *WORKFLOW_ENDPOINTS])
        return RunContext(self.environment, coverage=CoverageTracker(endpoints))

    # -- operations --------------------------------------------------------

    def generate(
        self,
        phases: Iterable[str] = (ALL_PHASES,),
        volume: VolumeConfiguration | None = None,
        *,
        incremental: bool = False,
    ) -> OperationResult:
        """Generate seed data for phases and their required dependencies."""
        requested = list(phases)
        volume_config = volume or VolumeConfiguration.from_preset("small")

        def prepare() -> None:
            order = self.graph.order(requested)
            volume_config.resolve(self.catalog, [s.name for s in self.catalog.for_phases(order)])

        def run(context: RunContext) -> tuple[GenerationReport, bool]:
            generator = SeedDataGenerator(
                self.api, self.store, self.catalog, self.graph, context, seed=self.seed
            )
            report = generator.generate(requested, volume_config, incremental=incremental)
            return report, report.failed

        return self._execute("generate", prepare, run)

    def test(
        self,
        phases: Iterable[str] = (ALL_PHASES,),
        suites: Sequence[IntegrationTest] | None = None,
    ) -> OperationResult:
        """Run integration tests for the requested phases only.

        Args:
            phases: Phases to test, or ["all"].
            suites: Tests to run; defaults to the built-in per-phase suites.
                Only tests of the requested phases are run.
        """
        requested = list(phases)
        selected: list[str] = []

        def prepare() -> None:
            self.graph.validate()
            selected.extend(self.graph.expand(requested))

        def run(context: RunContext) -> tuple[TestRunReport, bool]:
            records = {spec.name: self.store.list_records(spec.name) for spec in self.catalog}
            context.registry.load(self.catalog, records)
            context.mutating = True

            if suites is None:
                factories = FactorySet(self.catalog, context.registry, seed=self.seed)
                tests = build_suites(selected, self.catalog, factories)
            else:
                tests = [t for t in suites if t.phase in selected]

            runner = IntegrationTestRunner(self.api, self.store, self.catalog, context.coverage)
            report = TestRunReport(
                environment=self.environment.name,
                phases=selected,
                results=runner.run(tests),
                coverage=context.coverage.report(phases=selected),
            )
            return report, report.failed

        return self._execute("test", prepare, run)

    def cleanup(
        self,
        *,
        phase: str | None = None,
        entity_type: str | None = None,
        confirm: bool = False,
        dry_run: bool = False,
    ) -> OperationResult:
        """Remove seed data scoped to a phase and/or entity type."""
        service = self._service()

        def prepare() -> None:
            if phase is not None:
                self.graph.get(phase)
            if entity_type is not None:
                self.catalog.get(entity_type)
            service.require_confirmation(CLEANUP, confirm, dry_run)

        def run(context: RunContext) -> tuple[CleanupReport, bool]:
            context.mutating = not dry_run
            report = service.cleanup(
                phase=phase, entity_type=entity_type, confirm=confirm, dry_run=dry_run
            )
            return report, report.failed

        return self._execute("cleanup", prepare, run)

    def reset(self, *, confirm: bool = False, dry_run: bool = False) -> OperationResult:
        """Remove every seed record in the environment."""
        service = self._service()

        def prepare() -> None:
            service.require_confirmation(RESET, confirm, dry_run)

        def run(context: RunContext) -> tuple[CleanupReport, bool]:
            context.mutating = not dry_run
            report = service.reset(confirm=confirm, dry_run=dry_run)
            return report, report.failed

        return self._execute("reset", prepare, run)

    def validate(self, phases: Iterable[str] = (ALL_PHASES,)) -> OperationResult:
        """Read seed data back and report references that do not resolve."""
        requested = list(phases)
        selected: list[str] = []

        def prepare() -> None:
            selected.extend(self.graph.expand(requested))

        def run(context: RunContext) -> tuple[IntegrityReport, bool]:
            report = IntegrityChecker(self.store, self.catalog, self.environment).check(selected)
            return report, report.failed

        return self._execute("validate", prepare, run)

    def status(self) -> OperationResult:
        """Seed vs non-seed record counts per entity type."""
        service = self._service()

        def run(context: RunContext) -> tuple[StatusReport, bool]:
            return service.status(), False

        return self._execute("status", lambda: None, run)

    def preflight(self) -> OperationResult:
        """Report API and database reachability without failing fast."""
        with span("seedline_preflight", attributes={"environment": self.environment.name}):
            result = self.validator.validate(self.environment)
        outcome = (
            OperationOutcome.SUCCESS if result.passed else OperationOutcome.COMPLETED_WITH_FAILURES
        )
        return OperationResult(
            operation="preflight",
            environment=self.environment.name,
            outcome=outcome,
            report=result,
        )

    # -- plumbing ----------------------------------------------------------

    def _service(self) -> DataManagementService:
        return DataManagementService(self.store, self.catalog, self.environment, graph=self.graph)

    def _execute(
        self,
        operation: str,
        prepare: Callable[[], None],
        run: Callable[[RunContext], tuple[Report, bool]],
    ) -> OperationResult:
        log = self._log.bind(operation=operation)
        context: RunContext | None = None
        try:
            with span(
                f"seedline_{operation}", attributes={"environment": self.environment.name}
            ):
                prepare()
                self.validator.ensure(self.environment)
                context = self.new_context()
                log = log.bind(run_id=context.run_id)
                report, failed = run(context)
        except OperationAbortedError as exc:
            log.warning("operation_aborted", error=str(exc), error_type=type(exc).__name__)
            return OperationResult(
                operation=operation,
                environment=self.environment.name,
                outcome=OperationOutcome.ABORTED,
                error=str(exc),
            )
        except SeedlineError as exc:
            mutated = context is not None and context.mutating
            log.error(
                "operation_interrupted",
                error=str(exc),
                error_type=type(exc).__name__,
                mutated=mutated,
            )
            return OperationResult(
                operation=operation,
                environment=self.environment.name,
                outcome=(
                    OperationOutcome.COMPLETED_WITH_FAILURES
                    if mutated
                    else OperationOutcome.ABORTED
                ),
                error=str(exc),
            )

        outcome = OperationOutcome.COMPLETED_WITH_FAILURES if failed else OperationOutcome.SUCCESS
        log.info("operation_finished", outcome=outcome.value)
        return OperationResult(
            operation=operation,
            environment=self.environment.name,
            outcome=outcome,
            report=report,
        )
