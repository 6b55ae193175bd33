"""Entity type catalog and the seed entity model.

The catalog declares, for every generated entity type, its owning phase, API
collection, reference fields and unique fields. Creation order within a phase
follows catalog declaration order so that same-phase references resolve.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from seedline.errors import UnknownEntityTypeError

SEED_FLAG = "isSeedData"
SEED_PHASE = "seedPhase"
SEED_TIMESTAMP = "seedDataGeneratedAt"


class ReferenceSpec(BaseModel):
    """A foreign-key style field pointing at another entity type."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target: str = Field(..., description="Referenced entity type")
    required: bool = Field(default=True, description="Entity cannot be created without it")


class EntityTypeSpec(BaseModel):
    """Declaration of one generated entity type.

    Attributes:
        name: Entity type name (e.g., "shift")
        phase: Owning phase
        collection: API collection path segment (e.g., "shifts")
        base_count: Count generated by the "small" volume preset
        references: Reference fields keyed by field name
        unique_fields: Fields whose values must never collide
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Entity type name")
    phase: str = Field(..., min_length=1, description="Owning phase")
    collection: str = Field(..., min_length=1, description="API collection path")
    base_count: int = Field(default=5, ge=0, description="Small preset count")
    references: dict[str, ReferenceSpec] = Field(
        default_factory=dict, description="Reference fields"
    )
    unique_fields: tuple[str, ...] = Field(default=(), description="Unique fields")

    @property
    def path(self) -> str:
        return f"/{self.collection}"


class SeedEntity(BaseModel):
    """A generated domain record accepted by the backend.

    Example:
        >>> SeedEntity(
        ...     id="64f1c2...",
        ...     entity_type="shift",
        ...     phase="scheduling",
        ...     reference_fields={"clientId": "64f1a0...", "organizationId": "64f19f..."},
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Entity id")
    entity_type: str = Field(..., description="Entity type name")
    phase: str = Field(..., description="Owning phase")
    is_seed_data: bool = Field(default=True, description="Seed-data marker")
    reference_fields: dict[str, str] = Field(
        default_factory=dict, description="Reference field values"
    )
    attributes: dict[str, Any] = Field(default_factory=dict, description="Submitted payload")


def _ref(target: str, required: bool = True) -> ReferenceSpec:
    return ReferenceSpec(target=target, required=required)


DEFAULT_ENTITY_TYPES: tuple[EntityTypeSpec, ...] = (
    # client-portal
    EntityTypeSpec(name="organization", phase="client-portal", collection="organizations",
                   base_count=1),
    EntityTypeSpec(
        name="user",
        phase="client-portal",
        collection="users",
        base_count=10,
        references={"organizationId": _ref("organization", required=False)},
        unique_fields=("email",),
    ),
    EntityTypeSpec(
        name="client",
        phase="client-portal",
        collection="clients",
        base_count=10,
        references={"organizationId": _ref("organization")},
        unique_fields=("ndisNumber",),
    ),
    # scheduling
    EntityTypeSpec(
        name="worker",
        phase="scheduling",
        collection="workers",
        base_count=5,
        references={"userId": _ref("user"), "organizationId": _ref("organization")},
    ),
    EntityTypeSpec(
        name="shift",
        phase="scheduling",
        collection="shifts",
        base_count=20,
        references={
            "clientId": _ref("client"),
            "organizationId": _ref("organization"),
            "workerId": _ref("worker", required=False),
        },
    ),
    # payroll
    EntityTypeSpec(
        name="timesheet",
        phase="payroll",
        collection="timesheets",
        base_count=20,
        references={
            "workerId": _ref("worker"),
            "shiftId": _ref("shift"),
            "organizationId": _ref("organization"),
        },
    ),
    # financial-intelligence
    EntityTypeSpec(
        name="invoice",
        phase="financial-intelligence",
        collection="invoices",
        base_count=10,
        references={"clientId": _ref("client"), "organizationId": _ref("organization")},
        unique_fields=("invoiceNumber",),
    ),
    EntityTypeSpec(
        name="payment",
        phase="financial-intelligence",
        collection="payments",
        base_count=5,
        references={"invoiceId": _ref("invoice"), "organizationId": _ref("organization")},
    ),
    # care-intelligence
    EntityTypeSpec(
        name="care_plan",
        phase="care-intelligence",
        collection="care-plans",
        base_count=5,
        references={
            "clientId": _ref("client"),
            "organizationId": _ref("organization"),
            "assignedWorkerId": _ref("worker", required=False),
        },
    ),
    EntityTypeSpec(
        name="medication",
        phase="care-intelligence",
        collection="medications",
        base_count=10,
        references={"clientId": _ref("client")},
    ),
    EntityTypeSpec(
        name="incident",
        phase="care-intelligence",
        collection="incidents",
        base_count=3,
        references={
            "clientId": _ref("client"),
            "organizationId": _ref("organization"),
            "reportedBy": _ref("worker", required=False),
        },
    ),
    # workforce-optimization
    EntityTypeSpec(
        name="availability",
        phase="workforce-optimization",
        collection="workforce/availability",
        base_count=10,
        references={"workerId": _ref("worker"), "organizationId": _ref("organization")},
    ),
    # realtime-portal
    EntityTypeSpec(
        name="active_timer",
        phase="realtime-portal",
        collection="realtime/timers",
        base_count=3,
        references={"workerId": _ref("worker"), "shiftId": _ref("shift")},
    ),
    # offline-sync
    EntityTypeSpec(
        name="sync_record",
        phase="offline-sync",
        collection="sync/records",
        base_count=10,
        references={"workerId": _ref("worker"), "organizationId": _ref("organization")},
    ),
    # compliance
    EntityTypeSpec(
        name="compliance_record",
        phase="compliance",
        collection="compliance/records",
        base_count=5,
        references={"workerId": _ref("worker"), "organizationId": _ref("organization")},
    ),
    # expenses
    EntityTypeSpec(
        name="expense",
        phase="expenses",
        collection="expenses",
        base_count=10,
        references={"workerId": _ref("worker"), "organizationId": _ref("organization")},
    ),
    # analytics
    EntityTypeSpec(
        name="analytics_report",
        phase="analytics",
        collection="analytics/reports",
        base_count=2,
        references={
            "organizationId": _ref("organization"),
            "invoiceId": _ref("invoice"),
            "incidentId": _ref("incident", required=False),
        },
    ),
)


class EntityCatalog:
    """Registry of entity type declarations.

    Args:
        entity_types: Declarations in creation order.
    """

    def __init__(self, entity_types: Sequence[EntityTypeSpec] = DEFAULT_ENTITY_TYPES) -> None:
        self._types: dict[str, EntityTypeSpec] = {}
        for spec in entity_types:
            if spec.name in self._types:
                raise ValueError(f"Duplicate entity type declaration: {spec.name}")
            self._types[spec.name] = spec

        # Targets must be declared first so that creation order resolves them.
        declared: set[str] = set()
        for spec in self._types.values():
            for field, ref in spec.references.items():
                if ref.target not in declared:
                    raise ValueError(
                        f"{spec.name}.{field} references '{ref.target}', "
                        "which is not declared before it"
                    )
            declared.add(spec.name)

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[EntityTypeSpec]:
        return iter(self._types.values())

    def names(self) -> list[str]:
        return list(self._types)

    def get(self, name: str) -> EntityTypeSpec:
        """Look up an entity type.

        Raises:
            UnknownEntityTypeError: If the type is not declared.
        """
        try:
            return self._types[name]
        except KeyError:
            raise UnknownEntityTypeError(name, self.names()) from None

    def for_phase(self, phase: str) -> list[EntityTypeSpec]:
        """Entity types owned by a phase, in creation order."""
        return [spec for spec in self._types.values() if spec.phase == phase]

    def for_phases(self, phases: Iterable[str]) -> list[EntityTypeSpec]:
        """Entity types owned by the given phases, phase by phase."""
        return [spec for phase in phases for spec in self.for_phase(phase)]

    def deletion_order(self, names: Iterable[str] | None = None) -> list[str]:
        """Entity type names ordered so referencing types come before their targets."""
        wanted = set(self._types if names is None else names)
        return [name for name in reversed(self._types) if name in wanted]

    def phases(self) -> list[str]:
        """Distinct owning phases, in catalog order."""
        seen: dict[str, None] = {}
        for spec in self._types.values():
            seen.setdefault(spec.phase, None)
        return list(seen)

    def reference_values(self, entity_type: str, record: Mapping[str, Any]) -> dict[str, str]:
        """Extract populated reference field values from a record."""
        spec = self.get(entity_type)
        return {
            field: str(record[field])
            for field in spec.references
            if record.get(field) is not None
        }
