"""Declared API endpoints per phase.

CRUD endpoints are derived from each catalog entity type's collection; the
phase-specific workflow endpoints are declared explicitly below.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field

from seedline.entities import EntityCatalog


class Endpoint(BaseModel):
    """One declared API endpoint.

    Path templates use ``:name`` placeholders (e.g., ``/shifts/:id``).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: str = Field(..., description="HTTP method")
    path: str = Field(..., description="Path template")
    phase: str = Field(..., description="Owning phase")
    critical: bool = Field(default=True, description="Counts toward critical coverage")

    @property
    def key(self) -> str:
        return f"{self.method} {self.path}"

    def pattern(self) -> re.Pattern[str]:
        segments = [
            r"[^/]+" if segment.startswith(":") else re.escape(segment)
            for segment in self.path.strip("/").split("/")
        ]
        return re.compile("^/" + "/".join(segments) + "$")


def _extras(phase: str, *routes: tuple[str, str, bool]) -> list[Endpoint]:
    return [Endpoint(method=m, path=p, phase=phase, critical=c) for m, p, c in routes]


WORKFLOW_ENDPOINTS: tuple[Endpoint, ...] = (
    *_extras(
        "financial-intelligence",
        ("POST", "/invoices/:id/send", True),
        ("POST", "/invoices/:id/payment", True),
        ("GET", "/invoices/:id/pdf", False),
        ("GET", "/financial-reports", True),
        ("GET", "/revenue-forecasts", False),
    ),
    *_extras(
        "care-intelligence",
        ("POST", "/care-plans/:id/goals", True),
        ("POST", "/medications/:id/log", True),
        ("GET", "/care-reports", False),
    ),
    *_extras(
        "workforce-optimization",
        ("POST", "/workforce/optimize-schedule", True),
        ("GET", "/workforce/analytics", False),
    ),
    *_extras(
        "realtime-portal",
        ("GET", "/realtime/tracking/active", True),
        ("POST", "/realtime/messages", False),
    ),
    *_extras(
        "client-portal",
        ("GET", "/client-portal/profile", True),
        ("GET", "/client-portal/appointments", True),
    ),
    *_extras(
        "payroll",
        ("POST", "/payroll/runs", True),
        ("GET", "/payroll/summary", False),
    ),
    *_extras(
        "offline-sync",
        ("POST", "/sync/batch", True),
        ("GET", "/sync/status", False),
    ),
    *_extras(
        "compliance",
        ("GET", "/compliance/expiring", True),
    ),
    *_extras(
        "expenses",
        ("PUT", "/expenses/:id/approve", True),
    ),
    *_extras(
        "scheduling",
        ("PUT", "/shifts/:id/assign", True),
        ("GET", "/shifts/calendar", False),
    ),
    *_extras(
        "analytics",
        ("GET", "/analytics/dashboard", True),
    ),
)


def crud_endpoints(catalog: EntityCatalog) -> list[Endpoint]:
    """Collection and item endpoints for every catalog entity type."""
    endpoints: list[Endpoint] = []
    for spec in catalog:
        item = f"{spec.path}/:id"
        endpoints.extend(
            [
                Endpoint(method="POST", path=spec.path, phase=spec.phase),
                Endpoint(method="GET", path=spec.path, phase=spec.phase),
                Endpoint(method="GET", path=item, phase=spec.phase),
                Endpoint(method="PUT", path=item, phase=spec.phase),
                Endpoint(method="DELETE", path=item, phase=spec.phase, critical=False),
            ]
        )
    return endpoints


class EndpointRegistry:
    """Ordered set of declared endpoints, unique by method and path template.

    Args:
        endpoints: Declarations; defaults to catalog CRUD plus workflow endpoints.

    Example:
        >>> registry = EndpointRegistry()
        >>> registry.register(Endpoint(method="GET", path="/health", phase="client-portal"))
        >>> len(registry.for_phase("client-portal")) > 0
        True
    """

    def __init__(self, endpoints: Iterable[Endpoint] | None = None) -> None:
        if endpoints is None:
            endpoints = [*crud_endpoints(EntityCatalog()), *WORKFLOW_ENDPOINTS]
        self._endpoints: dict[str, Endpoint] = {}
        for endpoint in endpoints:
            self.register(endpoint)

    def register(self, endpoint: Endpoint) -> None:
        """Declare an endpoint; re-declaring the same key replaces it."""
        self._endpoints[endpoint.key] = endpoint

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(self._endpoints.values())

    def __len__(self) -> int:
        return len(self._endpoints)

    def __contains__(self, key: object) -> bool:
        return key in self._endpoints

    def get(self, key: str) -> Endpoint:
        return self._endpoints[key]

    def for_phase(self, phase: str) -> list[Endpoint]:
        return [e for e in self._endpoints.values() if e.phase == phase]

    def phases(self) -> list[str]:
        seen: dict[str, None] = {}
        for endpoint in self._endpoints.values():
            seen.setdefault(endpoint.phase, None)
        return list(seen)

    def critical(self) -> list[Endpoint]:
        return [e for e in self._endpoints.values() if e.critical]
