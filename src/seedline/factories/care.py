"""Care plan, medication and incident factories (care-intelligence phase)."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from faker import Faker

from seedline.factories.base import (
    EntityFactory,
    FieldGenerator,
    WeightedChoice,
    iso,
    past_datetime,
)

CARE_GOALS = (
    "Maintain independence with daily living",
    "Increase community participation",
    "Improve mobility and strength",
    "Build social connections",
    "Manage medication safely",
    "Develop cooking skills",
)

MEDICATIONS: tuple[tuple[str, str], ...] = (
    ("Paracetamol", "500mg"),
    ("Metformin", "850mg"),
    ("Atorvastatin", "20mg"),
    ("Sertraline", "50mg"),
    ("Levothyroxine", "100mcg"),
    ("Amlodipine", "5mg"),
)

INCIDENT_TYPES = WeightedChoice(
    {"illness": 30, "injury": 25, "behavioral": 20, "medication-error": 10, "other": 15}
)


class CarePlanFactory(EntityFactory):
    entity_type = "care_plan"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "title": lambda fake, record: f"Support plan {fake.numerify('####')}",
            "startDate": lambda fake, record: iso(past_datetime(fake, days=365).date()),
            "endDate": lambda fake, record: iso(
                date.fromisoformat(record["startDate"]) + timedelta(days=365)
            ),
            "reviewDate": lambda fake, record: iso(
                date.fromisoformat(record["startDate"]) + timedelta(days=90)
            ),
            "goals": self._goals,
            "status": WeightedChoice(
                {"active": 70, "under-review": 15, "completed": 10, "inactive": 5}
            ),
        }

    @staticmethod
    def _goals(fake: Faker, record: dict[str, Any]) -> list[dict[str, Any]]:
        return [
            {
                "description": goal,
                "priority": fake.random_element(("low", "medium", "high")),
                "progress": fake.random_int(0, 100),
            }
            for goal in fake.random_elements(CARE_GOALS, length=fake.random_int(1, 3), unique=True)
        ]


class MedicationFactory(EntityFactory):
    entity_type = "medication"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "name": lambda fake, record: fake.random_element(MEDICATIONS)[0],
            "dosage": lambda fake, record: dict(MEDICATIONS)[record["name"]],
            "frequency": lambda fake, record: fake.random_element(
                ("once daily", "twice daily", "three times daily", "as required")
            ),
            "route": lambda fake, record: fake.random_element(("oral", "topical", "inhaled")),
            "startDate": lambda fake, record: iso(past_datetime(fake, days=400).date()),
            "prescriber": lambda fake, record: f"Dr {fake.last_name()}",
        }


class IncidentFactory(EntityFactory):
    entity_type = "incident"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "incidentDate": lambda fake, record: iso(past_datetime(fake, days=120)),
            "type": INCIDENT_TYPES,
            "severity": WeightedChoice({"low": 50, "medium": 30, "high": 15, "critical": 5}),
            "description": lambda fake, record: fake.paragraph(nb_sentences=2),
            "actionTaken": lambda fake, record: fake.sentence(nb_words=10),
            "reportedToNdis": lambda fake, record: record["severity"] in ("high", "critical"),
        }
