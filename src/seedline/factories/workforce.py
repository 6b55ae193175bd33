"""Worker-centred factories: scheduling, payroll, rostering, sync and compliance."""

from __future__ import annotations

from datetime import UTC, date, timedelta
from typing import Any

from faker import Faker

from seedline.factories.base import (
    EntityFactory,
    FieldGenerator,
    WeightedChoice,
    future_datetime,
    iso,
    money,
    past_datetime,
    shifted,
)

SHIFT_DURATIONS_HOURS = (2, 3, 4, 6, 8, 10, 12)

SHIFT_STATUS_WEIGHTS = WeightedChoice(
    {"completed": 40, "assigned": 25, "unassigned": 15, "in-progress": 10, "cancelled": 10}
)

SERVICE_TYPES = (
    "personal-care",
    "community-access",
    "domestic-assistance",
    "respite",
    "transport",
    "medication-support",
)

CERTIFICATION_TYPES = (
    "first-aid",
    "cpr",
    "working-with-children",
    "police-check",
    "ndis-worker-screening",
    "manual-handling",
    "medication-administration",
)


def _shift_start(fake: Faker, record: dict[str, Any]) -> str:
    if fake.boolean(chance_of_getting_true=60):
        return iso(past_datetime(fake, days=60))
    return iso(future_datetime(fake, days=30))


class WorkerFactory(EntityFactory):
    entity_type = "worker"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "employeeNumber": lambda fake, record: f"EMP-{fake.numerify('#####')}",
            "employmentType": WeightedChoice(
                {"casual": 40, "part-time": 30, "full-time": 20, "contractor": 10}
            ),
            "hourlyRate": lambda fake, record: money(fake, 28.0, 65.0),
            "startDate": lambda fake, record: iso(past_datetime(fake, days=1500).date()),
            "skills": lambda fake, record: fake.random_elements(
                SERVICE_TYPES, length=fake.random_int(1, 3), unique=True
            ),
            "maxHoursPerWeek": lambda fake, record: fake.random_element((20, 30, 38, 45)),
        }


class ShiftFactory(EntityFactory):
    """Shifts of a fixed duration set; end time derives from start."""

    entity_type = "shift"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "startTime": _shift_start,
            "duration": lambda fake, record: fake.random_element(SHIFT_DURATIONS_HOURS),
            "endTime": lambda fake, record: shifted(
                record["startTime"], hours=record["duration"]
            ),
            "serviceType": lambda fake, record: fake.random_element(SERVICE_TYPES),
            "status": self._status,
            "notes": lambda fake, record: fake.sentence(nb_words=8),
        }

    @staticmethod
    def _status(fake: Faker, record: dict[str, Any]) -> str:
        if not record.get("workerId"):
            return "unassigned"
        status = SHIFT_STATUS_WEIGHTS.pick(fake)
        return "assigned" if status == "unassigned" else status


class TimesheetFactory(EntityFactory):
    entity_type = "timesheet"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "clockIn": lambda fake, record: iso(past_datetime(fake, days=30)),
            "hoursWorked": lambda fake, record: fake.random_element(SHIFT_DURATIONS_HOURS),
            "clockOut": lambda fake, record: shifted(
                record["clockIn"], hours=record["hoursWorked"], minutes=fake.random_int(0, 15)
            ),
            "breakMinutes": lambda fake, record: fake.random_element((0, 15, 30, 45)),
            "status": WeightedChoice({"approved": 60, "pending": 30, "rejected": 10}),
        }


class AvailabilityFactory(EntityFactory):
    entity_type = "availability"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "dayOfWeek": lambda fake, record: fake.day_of_week().lower(),
            "startHour": lambda fake, record: fake.random_int(6, 14),
            "endHour": lambda fake, record: record["startHour"] + fake.random_int(4, 8),
            "preference": WeightedChoice({"preferred": 50, "available": 40, "unavailable": 10}),
        }


class ActiveTimerFactory(EntityFactory):
    entity_type = "active_timer"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "startedAt": lambda fake, record: iso(
                fake.date_time_between(start_date="-8h", end_date="now", tzinfo=UTC)
            ),
            "latitude": lambda fake, record: float(fake.latitude()),
            "longitude": lambda fake, record: float(fake.longitude()),
            "status": WeightedChoice({"running": 80, "paused": 20}),
        }


class SyncRecordFactory(EntityFactory):
    entity_type = "sync_record"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "deviceId": lambda fake, record: fake.uuid4(),
            "operation": WeightedChoice({"update": 50, "create": 40, "delete": 10}),
            "resource": lambda fake, record: fake.random_element(
                ("shift", "timesheet", "note", "expense")
            ),
            "queuedAt": lambda fake, record: iso(past_datetime(fake, days=7)),
            "status": WeightedChoice({"synced": 70, "pending": 20, "conflict": 10}),
        }


class ComplianceRecordFactory(EntityFactory):
    entity_type = "compliance_record"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "certificationType": lambda fake, record: fake.random_element(CERTIFICATION_TYPES),
            "issueDate": lambda fake, record: iso(past_datetime(fake, days=700).date()),
            "expiryDate": self._expiry,
            "status": WeightedChoice(
                {"valid": 70, "expiring-soon": 15, "expired": 10, "pending": 5}
            ),
            "documentNumber": lambda fake, record: fake.bothify("??-########").upper(),
        }

    @staticmethod
    def _expiry(fake: Faker, record: dict[str, Any]) -> str:
        years = fake.random_element((1, 2, 3))
        issued = date.fromisoformat(record["issueDate"])
        return iso(issued + timedelta(days=365 * years))
