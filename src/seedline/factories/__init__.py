"""Entity factories.

Faker-backed builders for every catalog entity type:
- people: organizations, users, clients
- workforce: workers, shifts, timesheets, availability, timers, sync, compliance
- finance: invoices, payments, expenses, analytics reports
- care: care plans, medications, incidents
"""

from __future__ import annotations

from seedline.factories.base import EntityFactory, WeightedChoice
from seedline.factories.registry import FACTORY_CLASSES, FactorySet

__all__ = [
    "FACTORY_CLASSES",
    "EntityFactory",
    "FactorySet",
    "WeightedChoice",
]
