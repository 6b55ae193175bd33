"""Referential integrity tracking.

Every entity gets a stable arena id when its creation is reserved. The
backend-assigned id becomes resolvable only after the backend has accepted
the entity and the reservation is confirmed, so a reference handed out by
resolve() always points at an entity that exists.
"""

from __future__ import annotations

import itertools
import threading
from collections import defaultdict
from collections.abc import Iterable

import structlog
from pydantic import BaseModel, ConfigDict, Field

from seedline.registry import EntityIdentityRegistry

logger = structlog.get_logger(__name__)


class Reservation(BaseModel):
    """A reserved slot for an entity that is about to be submitted."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    arena_id: str = Field(..., description="Stable run-local id")
    entity_type: str = Field(..., description="Entity type name")


class ReferentialIntegrityTracker:
    """Hands out reference targets that are guaranteed to exist.

    All mutations are serialized behind a single lock, so concurrent creation
    workers never lose or duplicate a reservation.

    Args:
        registry: Identity registry that confirmed ids are appended to.

    Example:
        >>> tracker = ReferentialIntegrityTracker(EntityIdentityRegistry())
        >>> slot = tracker.reserve("client")
        >>> tracker.resolve("client") is None
        True
        >>> tracker.confirm(slot, "c-1")
        >>> tracker.resolve("client")
        'c-1'
    """

    def __init__(self, registry: EntityIdentityRegistry) -> None:
        self._registry = registry
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._pending: dict[str, Reservation] = {}
        self._arena: dict[str, str] = {}
        self._confirmed: dict[str, list[str]] = defaultdict(list)
        self._cursor: dict[str, int] = defaultdict(int)

    def seed_existing(self, entity_type: str, ids: Iterable[str]) -> int:
        """Make pre-existing entities available as reference targets.

        Returns:
            Number of ids added.
        """
        added = 0
        with self._lock:
            known = set(self._confirmed[entity_type])
            for entity_id in ids:
                if entity_id not in known:
                    self._confirmed[entity_type].append(entity_id)
                    known.add(entity_id)
                    added += 1
        return added

    def reserve(self, entity_type: str) -> Reservation:
        """Reserve an arena id for an entity about to be submitted."""
        with self._lock:
            reservation = Reservation(
                arena_id=f"{entity_type}#{next(self._sequence)}",
                entity_type=entity_type,
            )
            self._pending[reservation.arena_id] = reservation
        return reservation

    def confirm(self, reservation: Reservation, created_id: str) -> None:
        """Bind a reservation to the id the backend assigned.

        Raises:
            KeyError: If the reservation is unknown or already settled.
        """
        with self._lock:
            self._pending.pop(reservation.arena_id)
            self._arena[reservation.arena_id] = created_id
            self._confirmed[reservation.entity_type].append(created_id)
        self._registry.register_id(reservation.entity_type, created_id)

    def release(self, reservation: Reservation) -> None:
        """Drop a reservation whose entity was never created."""
        with self._lock:
            self._pending.pop(reservation.arena_id, None)

    def lookup(self, arena_id: str) -> str | None:
        """Backend id bound to an arena id, if confirmed."""
        with self._lock:
            return self._arena.get(arena_id)

    def resolve(self, entity_type: str, phase: str | None = None) -> str | None:
        """Pick an existing entity of the given type to reference.

        Targets are handed out round-robin so references spread across the
        available entities.

        Args:
            entity_type: Referenced entity type.
            phase: Phase of the referencing entity, for logging.

        Returns:
            A confirmed entity id, or None if none exists yet.
        """
        with self._lock:
            candidates = self._confirmed[entity_type]
            if not candidates:
                logger.debug("reference_unresolved", entity_type=entity_type, phase=phase)
                return None
            index = self._cursor[entity_type] % len(candidates)
            self._cursor[entity_type] = index + 1
            return candidates[index]

    def exists(self, entity_type: str, entity_id: str) -> bool:
        with self._lock:
            return entity_id in self._confirmed[entity_type]

    def available(self, entity_type: str) -> int:
        with self._lock:
            return len(self._confirmed[entity_type])

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)
