"""Endpoint coverage accounting.

Observed request paths are normalized (query string and trailing slash
stripped, ObjectId and UUID segments replaced by ``:id``) and matched against
declared path templates. Each declared endpoint accumulates a hit count.
"""

from __future__ import annotations

import re
import threading
from collections import Counter

import structlog

from seedline.integration.endpoints import Endpoint, EndpointRegistry
from seedline.models import CoverageBreakdown, CoverageReport

logger = structlog.get_logger(__name__)

_OBJECT_ID = re.compile(r"^[0-9a-fA-F]{24}$")
_UUID = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def normalize_path(path: str) -> str:
    """Normalize a concrete request path for matching.

    Example:
        >>> normalize_path("/shifts/64f1c2a9e4b0a1b2c3d4e5f6/?expand=client")
        '/shifts/:id'
    """
    path = path.split("?", 1)[0].split("#", 1)[0]
    segments = [s for s in path.strip("/").split("/") if s]
    normalized = [
        ":id" if _OBJECT_ID.match(s) or _UUID.match(s) else s for s in segments
    ]
    return "/" + "/".join(normalized)


def _breakdown(endpoints: list[Endpoint], hits: Counter[str]) -> CoverageBreakdown:
    total = len(endpoints)
    tested = sum(1 for e in endpoints if hits[e.key] > 0)
    return CoverageBreakdown(
        total=total,
        tested=tested,
        untested=total - tested,
        percentage=round(tested / total * 100, 2) if total else 0.0,
    )


class CoverageTracker:
    """Accumulates hit counts per declared endpoint.

    Args:
        endpoints: Declared endpoint registry. Endpoints registered later are
            untested until a matching request is recorded.

    Example:
        >>> tracker = CoverageTracker(EndpointRegistry())
        >>> tracker.record("GET", "/shifts/64f1c2a9e4b0a1b2c3d4e5f6")
        >>> tracker.report().tested
        1
    """

    def __init__(self, endpoints: EndpointRegistry) -> None:
        self.endpoints = endpoints
        self._lock = threading.Lock()
        self._hits: Counter[str] = Counter()
        self._unmatched: Counter[str] = Counter()

    def match(self, method: str, path: str) -> Endpoint | None:
        """Find the declared endpoint a request hits.

        Exact templates win over parameterized ones, so ``/realtime/tracking/active``
        is not counted as ``/realtime/tracking/:workerId``.
        """
        method = method.upper()
        normalized = normalize_path(path)
        exact = f"{method} {normalized}"
        if exact in self.endpoints:
            return self.endpoints.get(exact)
        for endpoint in self.endpoints:
            if endpoint.method == method and endpoint.pattern().match(normalized):
                return endpoint
        return None

    def record(self, method: str, path: str) -> Endpoint | None:
        """Record one request; returns the matched endpoint, if any."""
        endpoint = self.match(method, path)
        with self._lock:
            if endpoint is None:
                self._unmatched[f"{method.upper()} {normalize_path(path)}"] += 1
            else:
                self._hits[endpoint.key] += 1
        if endpoint is None:
            logger.debug("coverage_unmatched_request", method=method, path=path)
        return endpoint

    def hits(self, key: str) -> int:
        with self._lock:
            return self._hits[key]

    def report(self, phases: list[str] | None = None) -> CoverageReport:
        """Summarize coverage, optionally restricted to some phases."""
        with self._lock:
            hits = Counter(self._hits)
            unmatched = sorted(self._unmatched)

        declared = [e for e in self.endpoints if phases is None or e.phase in phases]
        overall = _breakdown(declared, hits)
        by_phase = {
            phase: _breakdown([e for e in declared if e.phase == phase], hits)
            for phase in dict.fromkeys(e.phase for e in declared)
        }

        return CoverageReport(
            total=overall.total,
            tested=overall.tested,
            untested=overall.untested,
            percentage=overall.percentage,
            hits={e.key: hits[e.key] for e in declared},
            untested_endpoints=[e.key for e in declared if hits[e.key] == 0],
            unmatched_requests=unmatched,
            by_phase=by_phase,
            critical=_breakdown([e for e in declared if e.critical], hits),
        )
