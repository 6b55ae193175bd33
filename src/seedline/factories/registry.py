"""Factory lookup by entity type.

FactorySet owns one Faker instance shared by all factories of a run and
serializes every call into it, since Faker's random state is not thread-safe.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any

from faker import Faker

from seedline.entities import EntityCatalog
from seedline.factories.base import EntityFactory
from seedline.factories.care import CarePlanFactory, IncidentFactory, MedicationFactory
from seedline.factories.finance import (
    AnalyticsReportFactory,
    ExpenseFactory,
    InvoiceFactory,
    PaymentFactory,
)
from seedline.factories.people import ClientFactory, OrganizationFactory, UserFactory
from seedline.factories.workforce import (
    ActiveTimerFactory,
    AvailabilityFactory,
    ComplianceRecordFactory,
    ShiftFactory,
    SyncRecordFactory,
    TimesheetFactory,
    WorkerFactory,
)
from seedline.registry import EntityIdentityRegistry

FACTORY_CLASSES: dict[str, type[EntityFactory]] = {
    factory.entity_type: factory
    for factory in (
        OrganizationFactory,
        UserFactory,
        ClientFactory,
        WorkerFactory,
        ShiftFactory,
        TimesheetFactory,
        InvoiceFactory,
        PaymentFactory,
        CarePlanFactory,
        MedicationFactory,
        IncidentFactory,
        AvailabilityFactory,
        ActiveTimerFactory,
        SyncRecordFactory,
        ComplianceRecordFactory,
        ExpenseFactory,
        AnalyticsReportFactory,
    )
}


class FactorySet:
    """Factories for every catalog entity type, sharing one Faker instance.

    Args:
        catalog: Entity catalog.
        registry: Identity registry used for unique-value claims.
        seed: Optional seed for the Faker instance.
        factory_classes: Factory class per entity type.

    Example:
        >>> factories = FactorySet(EntityCatalog(), EntityIdentityRegistry(), seed=42)
        >>> payload = factories.build("client", {"organizationId": "org-1"})
    """

    def __init__(
        self,
        catalog: EntityCatalog,
        registry: EntityIdentityRegistry,
        *,
        seed: int | None = None,
        factory_classes: Mapping[str, type[EntityFactory]] | None = None,
    ) -> None:
        self.fake = Faker("en_AU")
        if seed is not None:
            self.fake.seed_instance(seed)
        self._lock = threading.Lock()

        classes = factory_classes if factory_classes is not None else FACTORY_CLASSES
        missing = [name for name in catalog.names() if name not in classes]
        if missing:
            raise ValueError(f"No factory registered for: {', '.join(missing)}")
        self._factories: dict[str, EntityFactory] = {
            spec.name: classes[spec.name](spec, self.fake, registry) for spec in catalog
        }

    def get(self, entity_type: str) -> EntityFactory:
        return self._factories[entity_type]

    def build(self, entity_type: str, references: Mapping[str, str]) -> dict[str, Any]:
        with self._lock:
            return self._factories[entity_type].build(references)

    def regenerate(self, entity_type: str, record: dict[str, Any], field: str) -> Any:
        with self._lock:
            return self._factories[entity_type].regenerate(record, field)
