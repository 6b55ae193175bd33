"""Organization, user and client factories (client-portal phase)."""

from __future__ import annotations

from typing import Any

from faker import Faker

from seedline.factories.base import EntityFactory, FieldGenerator, WeightedChoice, iso

ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "admin": (
        "clients:delete", "clients:read", "clients:write",
        "invoices:delete", "invoices:read", "invoices:write",
        "organization:manage",
        "reports:read", "reports:write",
        "settings:read", "settings:write",
        "shifts:delete", "shifts:read", "shifts:write",
        "users:delete", "users:read", "users:write",
    ),
    "manager": (
        "clients:read", "clients:write",
        "expenses:approve",
        "invoices:read", "invoices:write",
        "reports:read", "reports:write",
        "shifts:read", "shifts:write",
        "timesheets:approve",
        "users:read", "users:write",
    ),
    "supervisor": (
        "clients:read", "clients:write",
        "reports:read",
        "shifts:read", "shifts:write",
        "timesheets:approve",
        "users:read",
        "workers:manage",
    ),
    "worker": (
        "clients:read",
        "expenses:write",
        "profile:write",
        "shifts:read",
        "timesheets:write",
    ),
    "client": (
        "appointments:read",
        "care-plan:read",
        "invoices:read",
        "messages:read", "messages:write",
        "profile:read", "profile:write",
    ),
    "family": (
        "appointments:read",
        "care-plan:read",
        "client:read",
        "messages:read", "messages:write",
        "tracking:read",
    ),
}

ROLE_WEIGHTS = WeightedChoice(
    {"worker": 45, "client": 20, "family": 15, "supervisor": 8, "manager": 7, "admin": 5}
)

AU_STATES = ("NSW", "VIC", "QLD", "WA", "SA", "TAS", "ACT", "NT")


def _au_phone(fake: Faker, record: dict[str, Any]) -> str:
    return f"+61 4{fake.numerify('## ### ###')}"


class OrganizationFactory(EntityFactory):
    entity_type = "organization"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "name": lambda fake, record: f"{fake.company()} Care Services",
            "abn": lambda fake, record: fake.numerify("## ### ### ###"),
            "email": lambda fake, record: f"admin@{fake.domain_name()}",
            "phone": _au_phone,
            "state": lambda fake, record: fake.random_element(AU_STATES),
            "timezone": lambda fake, record: "Australia/Sydney",
        }


class UserFactory(EntityFactory):
    """Users with a weighted role mix and the role's permission set."""

    entity_type = "user"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "firstName": lambda fake, record: fake.first_name(),
            "lastName": lambda fake, record: fake.last_name(),
            "email": self._email,
            "password": lambda fake, record: fake.password(length=12, special_chars=False),
            "role": ROLE_WEIGHTS,
            "permissions": lambda fake, record: list(ROLE_PERMISSIONS[record["role"]]),
            "phone": _au_phone,
            "isActive": lambda fake, record: fake.boolean(chance_of_getting_true=90),
        }

    @staticmethod
    def _email(fake: Faker, record: dict[str, Any]) -> str:
        # Suffix keeps the candidate space large enough for big volumes.
        local = f"{record['firstName']}.{record['lastName']}.{fake.numerify('####')}"
        return f"{local}@{fake.free_email_domain()}".lower().replace(" ", "")


class ClientFactory(EntityFactory):
    """NDIS participants with Australian addresses."""

    entity_type = "client"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "firstName": lambda fake, record: fake.first_name(),
            "lastName": lambda fake, record: fake.last_name(),
            "dateOfBirth": lambda fake, record: iso(
                fake.date_of_birth(minimum_age=18, maximum_age=95)
            ),
            "ndisNumber": lambda fake, record: fake.numerify("#########"),
            "email": lambda fake, record: fake.email().lower(),
            "phone": _au_phone,
            "address": lambda fake, record: {
                "street": fake.street_address(),
                "suburb": fake.city(),
                "state": fake.random_element(AU_STATES),
                "postcode": fake.numerify("####"),
            },
            "emergencyContactName": lambda fake, record: fake.name(),
            "emergencyContactPhone": _au_phone,
            "fundingType": WeightedChoice({"ndis": 70, "private": 20, "home-care-package": 10}),
        }
