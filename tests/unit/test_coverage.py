"""Unit tests for endpoint declarations and coverage accounting."""

from __future__ import annotations

import pytest

from seedline.entities import EntityCatalog
from seedline.integration import CoverageTracker, Endpoint, EndpointRegistry, normalize_path
from seedline.integration.endpoints import WORKFLOW_ENDPOINTS, crud_endpoints

pytestmark = pytest.mark.unit

OBJECT_ID = "64f1c2a9e4b0a1b2c3d4e5f6"


def _tracker(*endpoints: Endpoint) -> CoverageTracker:
    return CoverageTracker(EndpointRegistry(endpoints))


class TestNormalizePath:
    """Tests for normalize_path."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (f"/shifts/{OBJECT_ID}", "/shifts/:id"),
            (f"/shifts/{OBJECT_ID}/?expand=client", "/shifts/:id"),
            ("/clients?isSeedData=true", "/clients"),
            ("/sync/records/0b8f8c1e-3c1d-4a7e-9d6b-2f0c4e1a9b77", "/sync/records/:id"),
            ("/shifts/calendar", "/shifts/calendar"),
            ("/", "/"),
        ],
    )
    def test_normalization(self, raw: str, expected: str) -> None:
        assert normalize_path(raw) == expected


class TestEndpointRegistry:
    """Tests for EndpointRegistry."""

    def test_crud_endpoints_per_type(self, catalog: EntityCatalog) -> None:
        endpoints = crud_endpoints(catalog)
        assert len(endpoints) == 5 * len(catalog.names())
        keys = {e.key for e in endpoints}
        assert "GET /workforce/availability/:id" in keys

    def test_redeclaring_replaces(self) -> None:
        registry = EndpointRegistry(
            [Endpoint(method="GET", path="/a", phase="x", critical=True)]
        )
        registry.register(Endpoint(method="GET", path="/a", phase="x", critical=False))
        assert len(registry) == 1
        assert registry.critical() == []

    def test_default_registry_covers_every_phase(self, catalog: EntityCatalog) -> None:
        registry = EndpointRegistry()
        assert set(registry.phases()) == set(catalog.phases())
        assert len(registry) == len(crud_endpoints(catalog)) + len(WORKFLOW_ENDPOINTS)


class TestCoverageTracker:
    """Tests for CoverageTracker."""

    def test_records_hits_on_templates(self) -> None:
        tracker = _tracker(
            Endpoint(method="GET", path="/shifts/:id", phase="scheduling"),
            Endpoint(method="GET", path="/shifts", phase="scheduling"),
        )
        tracker.record("get", f"/shifts/{OBJECT_ID}")
        tracker.record("GET", f"/shifts/{OBJECT_ID}")

        assert tracker.hits("GET /shifts/:id") == 2
        report = tracker.report()
        assert report.total == 2
        assert report.tested == 1
        assert report.untested_endpoints == ["GET /shifts"]
        assert report.percentage == 50.0

    def test_exact_template_wins(self) -> None:
        tracker = _tracker(
            Endpoint(method="GET", path="/realtime/tracking/:workerId", phase="realtime-portal"),
            Endpoint(method="GET", path="/realtime/tracking/active", phase="realtime-portal"),
        )
        endpoint = tracker.record("GET", "/realtime/tracking/active")
        assert endpoint is not None
        assert endpoint.path == "/realtime/tracking/active"

    def test_method_must_match(self) -> None:
        tracker = _tracker(Endpoint(method="GET", path="/clients", phase="client-portal"))
        assert tracker.record("DELETE", "/clients") is None
        assert tracker.report().unmatched_requests == ["DELETE /clients"]

    def test_invariants_hold(self) -> None:
        tracker = CoverageTracker(EndpointRegistry())
        tracker.record("POST", "/shifts")
        tracker.record("GET", "/health")
        report = tracker.report()
        assert report.tested + report.untested == report.total
        assert 0 <= report.percentage <= 100
        assert report.critical.tested <= report.critical.total

    def test_late_registration_starts_untested(self) -> None:
        registry = EndpointRegistry([Endpoint(method="GET", path="/a", phase="x")])
        tracker = CoverageTracker(registry)
        tracker.record("GET", "/a")
        registry.register(Endpoint(method="GET", path="/b", phase="x"))
        report = tracker.report()
        assert (report.tested, report.untested) == (1, 1)

    def test_report_restricted_to_phases(self) -> None:
        tracker = _tracker(
            Endpoint(method="GET", path="/a", phase="x"),
            Endpoint(method="GET", path="/b", phase="y"),
        )
        tracker.record("GET", "/a")
        report = tracker.report(phases=["y"])
        assert report.total == 1
        assert report.tested == 0
        assert list(report.by_phase) == ["y"]

    def test_empty_registry(self) -> None:
        report = CoverageTracker(EndpointRegistry([])).report()
        assert report.total == 0
        assert report.percentage == 0.0
