"""In-memory backend for unit tests.

InMemoryBackend implements both EntityApi and EntityStore over plain dicts.
It enforces reference existence and unique fields the way the real API does
(422 for dangling references, 409 for duplicates) and supports injected
validation rejections and per-type delete failures. StaticValidator answers
connectivity checks without touching the network.
"""

from __future__ import annotations

import itertools
import threading
from collections import defaultdict
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl

from seedline.backend import BackendResponse, parse_field_errors
from seedline.config import EnvironmentConfig
from seedline.connectivity import ConnectivityValidator
from seedline.entities import SEED_FLAG, SEED_PHASE, EntityCatalog, EntityTypeSpec
from seedline.errors import BackendRequestError
from seedline.models import CheckResult, CheckStatus, ConnectivityResult


class InMemoryBackend:
    """Dict-backed stand-in for the system under test."""

    def __init__(self, catalog: EntityCatalog | None = None) -> None:
        self.catalog = catalog or EntityCatalog()
        self.records: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.calls: list[tuple[str, str]] = []
        self.create_attempts: dict[str, int] = defaultdict(int)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._rejections: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self._delete_failures: set[str] = set()
        self._count_failures: set[str] = set()

    # -- test setup --------------------------------------------------------

    def add(self, entity_type: str, record: Mapping[str, Any], *, seed: bool = False) -> str:
        """Insert a record directly, bypassing validation."""
        with self._lock:
            entity_id = self._next_id()
            self.records[entity_type][entity_id] = {
                **record,
                "id": entity_id,
                SEED_FLAG: seed,
            }
        return entity_id

    def reject(
        self,
        entity_type: str,
        field: str,
        *,
        kind: str = "format",
        times: int | None = 1,
        message: str = "",
    ) -> None:
        """Reject the next ``times`` creations of a type on one field (None = always)."""
        self._rejections[entity_type].append(
            {"field": field, "kind": kind, "times": times, "message": message}
        )

    def fail_deletes(self, entity_type: str) -> None:
        self._delete_failures.add(entity_type)

    def fail_counts(self, entity_type: str) -> None:
        self._count_failures.add(entity_type)

    def seed_ids(self, entity_type: str) -> list[str]:
        return [i for i, r in self.records[entity_type].items() if r.get(SEED_FLAG) is True]

    # -- EntityApi ---------------------------------------------------------

    def create(self, entity_type: str, payload: Mapping[str, Any]) -> BackendResponse:
        spec = self.catalog.get(entity_type)
        self.calls.append(("POST", spec.path))
        return self._create(spec, dict(payload))

    def request(
        self, method: str, path: str, payload: Mapping[str, Any] | None = None
    ) -> BackendResponse:
        method = method.upper()
        self.calls.append((method, path))
        route, _, query = path.partition("?")
        params = dict(parse_qsl(query))

        if route == "/health":
            return BackendResponse(status_code=200, body={"status": "ok"})

        match = self._route(route)
        if match is None:
            return BackendResponse(status_code=404, body={"message": "Not found"})
        spec, entity_id = match
        records = self.records[spec.name]

        if entity_id is None:
            if method == "POST":
                return self._create(spec, dict(payload or {}))
            if method == "GET":
                items = [r for r in records.values() if _matches(r, params)]
                return BackendResponse(status_code=200, body={"data": items})
            return BackendResponse(status_code=405, body={"message": "Method not allowed"})

        record = records.get(entity_id)
        if record is None:
            return BackendResponse(status_code=404, body={"message": "Not found"})
        if method == "GET":
            return BackendResponse(status_code=200, body=dict(record))
        if method == "PUT":
            record.update(payload or {})
            return BackendResponse(status_code=200, body=dict(record))
        if method == "DELETE":
            del records[entity_id]
            return BackendResponse(status_code=204)
        return BackendResponse(status_code=405, body={"message": "Method not allowed"})

    # -- EntityStore -------------------------------------------------------

    def list_records(
        self, entity_type: str, *, is_seed_data: bool | None = None
    ) -> list[dict[str, Any]]:
        self.catalog.get(entity_type)
        return [
            dict(r)
            for r in self.records[entity_type].values()
            if is_seed_data is None or bool(r.get(SEED_FLAG)) is is_seed_data
        ]

    def count(
        self,
        entity_type: str,
        *,
        is_seed_data: bool | None = None,
        phase: str | None = None,
    ) -> int:
        if entity_type in self._count_failures:
            raise BackendRequestError(f"GET /{entity_type}/count", 500)
        return sum(
            1
            for r in self.records[entity_type].values()
            if (is_seed_data is None or bool(r.get(SEED_FLAG)) is is_seed_data)
            and (phase is None or r.get(SEED_PHASE) == phase)
        )

    def delete_seed_records(self, entity_type: str, *, phase: str | None = None) -> int:
        if entity_type in self._delete_failures:
            raise BackendRequestError(f"DELETE /{entity_type}", 500)
        with self._lock:
            records = self.records[entity_type]
            doomed = [
                i
                for i, r in records.items()
                if r.get(SEED_FLAG) is True and (phase is None or r.get(SEED_PHASE) == phase)
            ]
            for entity_id in doomed:
                del records[entity_id]
        return len(doomed)

    # -- internals ---------------------------------------------------------

    def _next_id(self) -> str:
        return f"{next(self._ids):024x}"

    def _route(self, path: str) -> tuple[EntityTypeSpec, str | None] | None:
        for spec in sorted(self.catalog, key=lambda s: len(s.path), reverse=True):
            if path == spec.path:
                return spec, None
            prefix = f"{spec.path}/"
            if path.startswith(prefix) and "/" not in path[len(prefix) :]:
                return spec, path[len(prefix) :]
        return None

    def _create(self, spec: EntityTypeSpec, payload: dict[str, Any]) -> BackendResponse:
        with self._lock:
            self.create_attempts[spec.name] += 1
            errors = self._injected_errors(spec.name)

            for field, ref in spec.references.items():
                value = payload.get(field)
                if value is None:
                    if ref.required:
                        errors.append(
                            {"field": field, "kind": "required", "message": f"{field} is required"}
                        )
                elif value not in self.records[ref.target]:
                    errors.append(
                        {
                            "field": field,
                            "kind": "reference",
                            "message": f"{ref.target} {value} not found",
                        }
                    )

            if errors:
                body = {"errors": errors}
                return BackendResponse(
                    status_code=422, body=body, errors=parse_field_errors(422, body)
                )

            for field in spec.unique_fields:
                value = str(payload.get(field, "")).lower()
                if any(
                    str(r.get(field, "")).lower() == value
                    for r in self.records[spec.name].values()
                ):
                    body = {"message": "Duplicate key", "keyValue": {field: payload[field]}}
                    return BackendResponse(
                        status_code=409, body=body, errors=parse_field_errors(409, body)
                    )

            entity_id = self._next_id()
            record = {**payload, "id": entity_id}
            self.records[spec.name][entity_id] = record
        return BackendResponse(status_code=201, body=dict(record))

    def _injected_errors(self, entity_type: str) -> list[dict[str, Any]]:
        errors: list[dict[str, Any]] = []
        for rule in self._rejections[entity_type]:
            if rule["times"] is None or rule["times"] > 0:
                if rule["times"] is not None:
                    rule["times"] -= 1
                errors.append(
                    {
                        "field": rule["field"],
                        "kind": rule["kind"],
                        "message": rule["message"] or f"{rule['field']} is invalid",
                    }
                )
        return errors


def _matches(record: Mapping[str, Any], params: Mapping[str, str]) -> bool:
    if SEED_FLAG in params and bool(record.get(SEED_FLAG)) is not (params[SEED_FLAG] == "true"):
        return False
    if SEED_PHASE in params and record.get(SEED_PHASE) != params[SEED_PHASE]:
        return False
    return True


class StaticValidator(ConnectivityValidator):
    """Connectivity validator with fixed answers and no network access."""

    def __init__(self, *, api_reachable: bool = True, db_reachable: bool = True) -> None:
        super().__init__()
        self.api_reachable = api_reachable
        self.db_reachable = db_reachable
        self.calls = 0

    def validate(self, environment: EnvironmentConfig) -> ConnectivityResult:
        self.calls += 1
        return ConnectivityResult(
            environment=environment.name,
            api_reachable=self.api_reachable,
            db_reachable=self.db_reachable,
            checks=[
                CheckResult(
                    name="api",
                    status=CheckStatus.PASSED if self.api_reachable else CheckStatus.FAILED,
                    message="API reachable" if self.api_reachable else "Cannot connect to API",
                ),
                CheckResult(
                    name="database",
                    status=CheckStatus.PASSED if self.db_reachable else CheckStatus.FAILED,
                    message=(
                        "Database reachable"
                        if self.db_reachable
                        else "Cannot connect to database"
                    ),
                ),
            ],
        )
