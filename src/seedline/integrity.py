"""Read-back audit of referential integrity.

Generation keeps references valid while it runs; this audit checks the
stored result afterwards. Every seed record of the audited types is listed
from the store and each reference field is resolved against the ids of its
target type (seed and non-seed records alike).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import structlog

from seedline.models import IntegrityReport, IntegrityViolation
from seedline.observability import span

if TYPE_CHECKING:
    from seedline.backend import EntityStore
    from seedline.config import EnvironmentConfig
    from seedline.entities import EntityCatalog, EntityTypeSpec

logger = structlog.get_logger(__name__)


def _record_id(record: Mapping[str, Any]) -> str | None:
    for key in ("id", "_id"):
        if record.get(key) is not None:
            return str(record[key])
    return None


class IntegrityChecker:
    """Resolve every stored seed reference against its target type.

    Args:
        store: Backend store to read from.
        catalog: Entity catalog declaring reference fields.
        environment: Target environment, for the report.

    Example:
        >>> report = IntegrityChecker(store, catalog, env).check(["scheduling"])
        >>> [v.message for v in report.violations]
        []
    """

    def __init__(
        self, store: EntityStore, catalog: EntityCatalog, environment: EnvironmentConfig
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.environment = environment
        self._log = logger.bind(environment=environment.name)

    def check(self, phases: Iterable[str]) -> IntegrityReport:
        """Audit seed records owned by the given phases.

        Args:
            phases: Phase names, already expanded and validated.

        Returns:
            IntegrityReport listing every unresolved reference.

        Raises:
            SeedlineError: If the store cannot be read.
        """
        phase_list = list(phases)
        specs = self.catalog.for_phases(phase_list)
        known_ids: dict[str, set[str]] = {}
        checked: dict[str, int] = {}
        violations: list[IntegrityViolation] = []

        with span("integrity_check", attributes={"phases": ",".join(phase_list)}):
            for spec in specs:
                records = self.store.list_records(spec.name, is_seed_data=True)
                checked[spec.name] = len(records)
                for record in records:
                    violations.extend(self._check_record(spec, record, known_ids))

        for violation in violations:
            self._log.warning(
                "integrity_violation",
                entity_type=violation.entity_type,
                entity_id=violation.entity_id,
                field=violation.field,
                value=violation.value,
            )
        self._log.info(
            "integrity_checked", checked=sum(checked.values()), violations=len(violations)
        )
        return IntegrityReport(
            environment=self.environment.name,
            phases=phase_list,
            checked=checked,
            violations=violations,
        )

    def _check_record(
        self,
        spec: EntityTypeSpec,
        record: Mapping[str, Any],
        known_ids: dict[str, set[str]],
    ) -> list[IntegrityViolation]:
        entity_id = _record_id(record) or "<no id>"
        found: list[IntegrityViolation] = []
        for field, ref in spec.references.items():
            value = record.get(field)
            if value is None:
                if ref.required:
                    found.append(
                        IntegrityViolation(
                            entity_type=spec.name,
                            entity_id=entity_id,
                            field=field,
                            target=ref.target,
                        )
                    )
                continue
            if str(value) not in self._ids(ref.target, known_ids):
                found.append(
                    IntegrityViolation(
                        entity_type=spec.name,
                        entity_id=entity_id,
                        field=field,
                        target=ref.target,
                        value=str(value),
                    )
                )
        return found

    def _ids(self, entity_type: str, known_ids: dict[str, set[str]]) -> set[str]:
        if entity_type not in known_ids:
            records = self.store.list_records(entity_type)
            known_ids[entity_type] = {
                rid for rid in (_record_id(r) for r in records) if rid is not None
            }
        return known_ids[entity_type]
