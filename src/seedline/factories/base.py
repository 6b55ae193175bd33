"""Base entity factory and generation utilities.

This module defines the EntityFactory base class that all factories extend,
plus weighted-choice helpers shared across domains.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable, Mapping
from datetime import UTC, date, datetime, timedelta
from typing import Any

import structlog
from faker import Faker

from seedline.entities import SEED_FLAG, SEED_PHASE, SEED_TIMESTAMP, EntityTypeSpec
from seedline.errors import DuplicateConstraintViolation
from seedline.registry import EntityIdentityRegistry

logger = structlog.get_logger(__name__)

FieldGenerator = Callable[[Faker, dict[str, Any]], Any]

MAX_UNIQUE_ATTEMPTS = 25


class EntityFactory:
    """Builds candidate payloads for one entity type.

    Subclasses declare ``field_generators()``: an ordered mapping of field
    name to a callable receiving the Faker instance and the record built so
    far, so dependent fields (an end after a start) can read earlier ones.

    Unique fields declared on the entity type are claimed in the identity
    registry before they are emitted; a collision triggers regeneration.

    Example:
        >>> class NoteFactory(EntityFactory):
        ...     entity_type = "note"
        ...     def field_generators(self):
        ...         return {"text": lambda fake, record: fake.sentence()}
    """

    entity_type: str = ""

    def __init__(
        self,
        spec: EntityTypeSpec,
        fake: Faker,
        registry: EntityIdentityRegistry,
    ) -> None:
        self.spec = spec
        self.fake = fake
        self.registry = registry

    def field_generators(self) -> dict[str, FieldGenerator]:
        raise NotImplementedError

    def build(self, references: Mapping[str, str]) -> dict[str, Any]:
        """Build a candidate payload.

        Args:
            references: Resolved reference field values.

        Returns:
            Payload with generated fields, references and seed markers.

        Raises:
            DuplicateConstraintViolation: If no free unique value was found.
        """
        record: dict[str, Any] = dict(references)
        for field, generator in self.field_generators().items():
            record[field] = self._generate(field, generator, record)
        return self._mark_as_seed_data(record)

    def regenerate(self, record: dict[str, Any], field: str) -> Any:
        """Produce a new value for one field of an existing candidate.

        Fields without a generator (including reference fields) keep their value.
        """
        generator = self.field_generators().get(field)
        if generator is None or field in self.spec.references:
            return record.get(field)
        return self._generate(field, generator, record)

    def _generate(self, field: str, generator: FieldGenerator, record: dict[str, Any]) -> Any:
        if field not in self.spec.unique_fields:
            return generator(self.fake, record)

        value: Any = None
        for _ in range(MAX_UNIQUE_ATTEMPTS):
            value = generator(self.fake, record)
            if self.registry.claim(self.spec.name, field, value):
                return value
            logger.debug("unique_value_collision", entity_type=self.spec.name, field=field)
        raise DuplicateConstraintViolation(self.spec.name, field, value)

    def _mark_as_seed_data(self, record: dict[str, Any]) -> dict[str, Any]:
        record[SEED_FLAG] = True
        record[SEED_PHASE] = self.spec.phase
        record[SEED_TIMESTAMP] = datetime.now(UTC).isoformat()
        return record


class WeightedChoice:
    """Helper for weighted random selection.

    Example:
        >>> statuses = WeightedChoice({"completed": 60, "assigned": 30, "cancelled": 10})
        >>> statuses.pick(fake)
        'completed'
    """

    def __init__(self, weights: dict[str, int]) -> None:
        total = sum(weights.values())
        self._elements: OrderedDict[str, float] = OrderedDict(
            (value, weight / total) for value, weight in weights.items()
        )

    def pick(self, fake: Faker) -> str:
        return str(fake.random_element(elements=self._elements))

    def __call__(self, fake: Faker, record: dict[str, Any]) -> str:
        return self.pick(fake)


def past_datetime(fake: Faker, days: int = 180) -> datetime:
    return fake.date_time_between(start_date=f"-{days}d", end_date="now", tzinfo=UTC)


def future_datetime(fake: Faker, days: int = 60) -> datetime:
    return fake.date_time_between(start_date="+1d", end_date=f"+{days}d", tzinfo=UTC)


def iso(value: date) -> str:
    return value.isoformat()


def shifted(value: str, **delta: float) -> str:
    """Offset an ISO timestamp by a timedelta."""
    return iso(datetime.fromisoformat(value) + timedelta(**delta))


def money(fake: Faker, low: float, high: float) -> float:
    return round(fake.pyfloat(min_value=low, max_value=high, right_digits=2), 2)
