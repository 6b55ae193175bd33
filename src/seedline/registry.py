"""Entity identity registry.

Tracks every id and unique-key value known during one run: values discovered
on records already present in the store, plus values issued to entities
created in the run. The registry is append-only; nothing is removed until the
run ends and the registry is discarded.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from seedline.entities import SEED_FLAG, EntityCatalog

logger = structlog.get_logger(__name__)


class EntityIdentityRegistry:
    """Thread-safe record of issued ids and unique-key values.

    Example:
        >>> registry = EntityIdentityRegistry()
        >>> registry.claim("user", "email", "ada@example.com")
        True
        >>> registry.claim("user", "email", "Ada@Example.com")
        False
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids: dict[str, set[str]] = defaultdict(set)
        self._unique: dict[tuple[str, str], set[str]] = defaultdict(set)
        self._preexisting_seed: dict[str, list[str]] = defaultdict(list)

    @staticmethod
    def _normalize(value: Any) -> str:
        return str(value).strip().lower()

    def claim(self, entity_type: str, field: str, value: Any) -> bool:
        """Atomically claim a unique-key value.

        Returns:
            True if the value was free and is now claimed, False on collision.
        """
        key = self._normalize(value)
        with self._lock:
            taken = self._unique[(entity_type, field)]
            if key in taken:
                return False
            taken.add(key)
            return True

    def is_claimed(self, entity_type: str, field: str, value: Any) -> bool:
        with self._lock:
            return self._normalize(value) in self._unique[(entity_type, field)]

    def register_id(self, entity_type: str, entity_id: str) -> None:
        """Record an id issued by the backend for a created entity."""
        with self._lock:
            self._ids[entity_type].add(entity_id)

    def has_id(self, entity_type: str, entity_id: str) -> bool:
        with self._lock:
            return entity_id in self._ids[entity_type]

    def ids(self, entity_type: str) -> set[str]:
        with self._lock:
            return set(self._ids[entity_type])

    def preexisting_seed_ids(self, entity_type: str) -> list[str]:
        """Ids of seed records that existed before the run, in store order."""
        with self._lock:
            return list(self._preexisting_seed[entity_type])

    def load(
        self,
        catalog: EntityCatalog,
        records_by_type: Mapping[str, Iterable[Mapping[str, Any]]],
    ) -> int:
        """Seed the registry from records already present in the store.

        Both seed and non-seed records contribute ids and unique keys, so new
        entities never collide with production data either.

        Returns:
            Number of records loaded.
        """
        loaded = 0
        with self._lock:
            for entity_type, records in records_by_type.items():
                spec = catalog.get(entity_type)
                for record in records:
                    entity_id = record.get("id")
                    if entity_id is not None:
                        self._ids[entity_type].add(str(entity_id))
                        if record.get(SEED_FLAG) is True:
                            self._preexisting_seed[entity_type].append(str(entity_id))
                    for field in spec.unique_fields:
                        if record.get(field) is not None:
                            self._unique[(entity_type, field)].add(
                                self._normalize(record[field])
                            )
                    loaded += 1

        logger.info("identity_registry_loaded", records=loaded)
        return loaded
