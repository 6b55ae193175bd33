"""Seed data removal and status.

DataManagementService removes seed-tagged records only (``isSeedData=true``),
one entity type at a time, in reverse creation order so referencing types go
before the types they reference. A failure on one type is recorded and the
remaining types are still processed.

Production-like environments require an explicit confirmation before any
deletion; without it the operation aborts with ConfirmationRequiredError
and nothing is deleted.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any

import structlog

from seedline.backend import EntityStore
from seedline.config import EnvironmentConfig
from seedline.entities import EntityCatalog
from seedline.errors import CleanupTypeFailure, ConfirmationRequiredError, SeedlineError
from seedline.models import CleanupFailure, CleanupReport, StatusReport, TypeStatus
from seedline.observability import span
from seedline.phases import PhaseDependencyGraph

logger = structlog.get_logger(__name__)

RESET = "reset"
CLEANUP = "cleanup"


class DataManagementService:
    """Full reset, selective cleanup and status for seed data.

    Args:
        store: Backend store.
        catalog: Entity catalog.
        environment: Resolved environment; ``production_like`` enables the
            confirmation gate and ``concurrency`` bounds per-type parallelism.
        graph: Phase graph used to validate phase scopes.

    Example:
        >>> service = DataManagementService(backend, EntityCatalog(), env)
        >>> report = service.cleanup(entity_type="shift")
        >>> report.removed
        {'shift': 20}
    """

    def __init__(
        self,
        store: EntityStore,
        catalog: EntityCatalog,
        environment: EnvironmentConfig,
        *,
        graph: PhaseDependencyGraph | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.environment = environment
        self.graph = graph or PhaseDependencyGraph()
        self._log = logger.bind(environment=environment.name)

    def reset(self, *, confirm: bool = False, dry_run: bool = False) -> CleanupReport:
        """Remove every seed record across all entity types.

        Raises:
            ConfirmationRequiredError: On a production-like environment
                without confirmation.
        """
        self.require_confirmation(RESET, confirm, dry_run)
        removed, failures = self._remove(self.catalog.deletion_order(), None, dry_run)
        remaining = None if dry_run else self._remaining_seed_count()
        report = CleanupReport(
            environment=self.environment.name,
            mode=RESET,
            dry_run=dry_run,
            removed=removed,
            failures=failures,
            remaining_seed_count=remaining,
        )
        self._log_report(report)
        return report

    def cleanup(
        self,
        *,
        phase: str | None = None,
        entity_type: str | None = None,
        confirm: bool = False,
        dry_run: bool = False,
    ) -> CleanupReport:
        """Remove seed records scoped to a phase, an entity type, or both.

        Without a scope this behaves like a reset.

        Raises:
            UnknownPhaseError: If the phase is not declared.
            UnknownEntityTypeError: If the entity type is not in the catalog.
            ConfirmationRequiredError: On a production-like environment
                without confirmation.
        """
        if phase is not None:
            self.graph.get(phase)
        if entity_type is not None:
            self.catalog.get(entity_type)
        self.require_confirmation(CLEANUP, confirm, dry_run)

        if entity_type is not None:
            targets = [entity_type]
        elif phase is not None:
            targets = self.catalog.deletion_order(s.name for s in self.catalog.for_phase(phase))
        else:
            targets = self.catalog.deletion_order()

        removed, failures = self._remove(targets, phase, dry_run)
        report = CleanupReport(
            environment=self.environment.name,
            mode=CLEANUP,
            phase=phase,
            entity_type=entity_type,
            dry_run=dry_run,
            removed=removed,
            failures=failures,
        )
        self._log_report(report)
        return report

    def status(self) -> StatusReport:
        """Seed and non-seed record counts per entity type."""
        types = [
            TypeStatus(
                entity_type=spec.name,
                phase=spec.phase,
                seed=self.store.count(spec.name, is_seed_data=True),
                production=self.store.count(spec.name, is_seed_data=False),
            )
            for spec in self.catalog
        ]
        return StatusReport(environment=self.environment.name, types=types)

    def require_confirmation(self, operation: str, confirm: bool, dry_run: bool = False) -> None:
        """Gate destructive operations on production-like environments.

        Raises:
            ConfirmationRequiredError: If confirmation is missing.
        """
        if self.environment.production_like and not confirm and not dry_run:
            self._log.warning("confirmation_required", operation=operation)
            raise ConfirmationRequiredError(self.environment.name, operation)

    def _remove(
        self, entity_types: list[str], phase: str | None, dry_run: bool
    ) -> tuple[dict[str, int], list[CleanupFailure]]:
        if self.environment.concurrency > 1 and len(entity_types) > 1:
            with ThreadPoolExecutor(max_workers=self.environment.concurrency) as pool:
                outcomes = list(
                    pool.map(lambda t: self._remove_type(t, phase, dry_run), entity_types)
                )
        else:
            outcomes = [self._remove_type(t, phase, dry_run) for t in entity_types]

        removed: dict[str, int] = {}
        failures: list[CleanupFailure] = []
        for entity_type, count, failure in outcomes:
            if failure is not None:
                failures.append(failure)
            else:
                removed[entity_type] = count
        return removed, failures

    def _remove_type(
        self, entity_type: str, phase: str | None, dry_run: bool
    ) -> tuple[str, int, CleanupFailure | None]:
        attributes: dict[str, Any] = {"entity_type": entity_type, "dry_run": dry_run}
        if phase is not None:
            attributes["phase"] = phase
        try:
            with span("cleanup_type", attributes=attributes, log_start=False):
                if dry_run:
                    count = self.store.count(entity_type, is_seed_data=True, phase=phase)
                else:
                    count = self.store.delete_seed_records(entity_type, phase=phase)
        except SeedlineError as exc:
            failure = CleanupTypeFailure(entity_type, str(exc))
            self._log.warning("cleanup_type_failed", entity_type=entity_type, error=str(exc))
            return entity_type, 0, CleanupFailure(entity_type=entity_type, message=str(failure))
        except Exception as exc:
            failure = CleanupTypeFailure(entity_type, f"unexpected error: {exc}")
            self._log.error(
                "cleanup_type_error",
                entity_type=entity_type,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return entity_type, 0, CleanupFailure(entity_type=entity_type, message=str(failure))
        return entity_type, count, None

    def _remaining_seed_count(self) -> int | None:
        try:
            return sum(self.store.count(t, is_seed_data=True) for t in self.catalog.names())
        except SeedlineError as exc:
            self._log.warning("remaining_seed_count_unavailable", error=str(exc))
            return None

    def _log_report(self, report: CleanupReport) -> None:
        self._log.info(
            "cleanup_completed",
            mode=report.mode,
            phase=report.phase,
            entity_type=report.entity_type,
            dry_run=report.dry_run,
            removed=report.total_removed,
            failed_types=[f.entity_type for f in report.failures],
        )
