"""Unit tests for DataManagementService."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest
from fakes import InMemoryBackend

from seedline.backend import HttpBackend, TransportRetryConfig
from seedline.config import EnvironmentConfig
from seedline.entities import EntityCatalog
from seedline.errors import ConfirmationRequiredError, UnknownEntityTypeError, UnknownPhaseError
from seedline.management import DataManagementService

pytestmark = pytest.mark.unit


@pytest.fixture
def populated(backend: InMemoryBackend) -> InMemoryBackend:
    """Backend with seed data in three phases plus production records."""
    org = backend.add("organization", {"seedPhase": "client-portal"}, seed=True)
    for _ in range(3):
        backend.add("client", {"organizationId": org, "seedPhase": "client-portal"}, seed=True)
    for _ in range(4):
        backend.add("shift", {"seedPhase": "scheduling"}, seed=True)
    for _ in range(2):
        backend.add("timesheet", {"seedPhase": "payroll"}, seed=True)
    backend.add("client", {"firstName": "Production"})
    backend.add("shift", {"notes": "real shift"})
    return backend


class TestReset:
    """Tests for full reset."""

    def test_removes_all_seed_data_only(
        self, populated: InMemoryBackend, catalog: EntityCatalog, env: EnvironmentConfig
    ) -> None:
        report = DataManagementService(populated, catalog, env).reset()

        assert report.failures == []
        assert report.total_removed == 10
        assert report.remaining_seed_count == 0
        assert set(report.removed) == set(catalog.names())
        assert populated.count("client", is_seed_data=False) == 1
        assert populated.count("shift", is_seed_data=False) == 1

    def test_dry_run_counts_without_deleting(
        self, populated: InMemoryBackend, catalog: EntityCatalog, env: EnvironmentConfig
    ) -> None:
        report = DataManagementService(populated, catalog, env).reset(dry_run=True)

        assert report.dry_run
        assert report.total_removed == 10
        assert report.remaining_seed_count is None
        assert len(populated.seed_ids("client")) == 3

    def test_one_failing_type_does_not_stop_others(
        self, populated: InMemoryBackend, catalog: EntityCatalog, env: EnvironmentConfig
    ) -> None:
        populated.fail_deletes("shift")
        report = DataManagementService(populated, catalog, env).reset()

        assert report.failed
        assert [f.entity_type for f in report.failures] == ["shift"]
        assert "shift" in report.failures[0].message
        assert len(report.removed) == len(catalog.names()) - 1
        assert report.total_removed == 6
        assert report.remaining_seed_count == 4

    def test_concurrent_removal_reports_every_type(
        self, populated: InMemoryBackend, catalog: EntityCatalog
    ) -> None:
        env = EnvironmentConfig(
            name="staging", api_url="http://api", db_url="mongodb://db", concurrency=4
        )
        populated.fail_deletes("timesheet")
        report = DataManagementService(populated, catalog, env).reset()

        assert set(report.removed) | {f.entity_type for f in report.failures} == set(
            catalog.names()
        )
        assert report.total_removed == 8


class TestCleanup:
    """Tests for selective cleanup."""

    def test_by_entity_type(
        self, populated: InMemoryBackend, catalog: EntityCatalog, env: EnvironmentConfig
    ) -> None:
        report = DataManagementService(populated, catalog, env).cleanup(entity_type="shift")

        assert report.removed == {"shift": 4}
        assert len(populated.seed_ids("client")) == 3
        assert populated.count("shift", is_seed_data=False) == 1

    def test_by_phase_in_deletion_order(
        self, populated: InMemoryBackend, catalog: EntityCatalog, env: EnvironmentConfig
    ) -> None:
        report = DataManagementService(populated, catalog, env).cleanup(phase="client-portal")

        assert list(report.removed) == ["client", "user", "organization"]
        assert report.total_removed == 4
        assert len(populated.seed_ids("shift")) == 4

    def test_phase_and_type_combined(
        self, populated: InMemoryBackend, catalog: EntityCatalog, env: EnvironmentConfig
    ) -> None:
        report = DataManagementService(populated, catalog, env).cleanup(
            phase="payroll", entity_type="shift"
        )
        assert report.removed == {"shift": 0}
        assert len(populated.seed_ids("shift")) == 4

    def test_unknown_scope_rejected(
        self, populated: InMemoryBackend, catalog: EntityCatalog, env: EnvironmentConfig
    ) -> None:
        service = DataManagementService(populated, catalog, env)
        with pytest.raises(UnknownPhaseError):
            service.cleanup(phase="billing")
        with pytest.raises(UnknownEntityTypeError):
            service.cleanup(entity_type="spaceship")
        assert len(populated.seed_ids("shift")) == 4


class TestConfirmationGate:
    """Tests for production-like confirmation."""

    def test_reset_without_confirmation_deletes_nothing(
        self, populated: InMemoryBackend, catalog: EntityCatalog, prod_env: EnvironmentConfig
    ) -> None:
        service = DataManagementService(populated, catalog, prod_env)
        with pytest.raises(ConfirmationRequiredError, match="production-like"):
            service.reset()
        assert len(populated.seed_ids("client")) == 3

    def test_cleanup_with_confirmation(
        self, populated: InMemoryBackend, catalog: EntityCatalog, prod_env: EnvironmentConfig
    ) -> None:
        report = DataManagementService(populated, catalog, prod_env).cleanup(
            entity_type="client", confirm=True
        )
        assert report.removed == {"client": 3}

    def test_dry_run_needs_no_confirmation(
        self, populated: InMemoryBackend, catalog: EntityCatalog, prod_env: EnvironmentConfig
    ) -> None:
        report = DataManagementService(populated, catalog, prod_env).reset(dry_run=True)
        assert report.total_removed == 10

    def test_non_production_needs_no_confirmation(
        self, populated: InMemoryBackend, catalog: EntityCatalog, env: EnvironmentConfig
    ) -> None:
        DataManagementService(populated, catalog, env).require_confirmation("reset", False)


class TestStatus:
    """Tests for status counts."""

    def test_counts_seed_and_production(
        self, populated: InMemoryBackend, catalog: EntityCatalog, env: EnvironmentConfig
    ) -> None:
        report = DataManagementService(populated, catalog, env).status()
        by_type = {t.entity_type: t for t in report.types}

        assert by_type["client"].seed == 3
        assert by_type["client"].production == 1
        assert report.seed_total == 10
        assert report.production_total == 2


class TestCleanupResilience:
    """Unexpected store behaviour is isolated to the affected type."""

    def test_delete_without_body_fails_only_that_type(
        self, catalog: EntityCatalog, env: EnvironmentConfig
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "DELETE" and request.url.path == "/api/shifts":
                return httpx.Response(204)
            if request.method == "DELETE":
                return httpx.Response(200, json={"deleted": 2})
            return httpx.Response(200, json={"count": 0})

        retry = TransportRetryConfig(max_attempts=1, initial_wait_seconds=0.0)
        with HttpBackend(
            env, catalog, retry=retry, transport=httpx.MockTransport(handler)
        ) as store:
            report = DataManagementService(store, catalog, env).reset()

        assert [f.entity_type for f in report.failures] == ["shift"]
        assert "'deleted'" in report.failures[0].message
        assert "shift" not in report.removed
        assert report.total_removed == 2 * (len(catalog.names()) - 1)
        assert report.remaining_seed_count == 0

    def test_unexpected_exception_recorded_as_failure(
        self, populated: InMemoryBackend, catalog: EntityCatalog, env: EnvironmentConfig
    ) -> None:
        delete = populated.delete_seed_records

        def flaky_delete(entity_type: str, *, phase: str | None = None) -> int:
            if entity_type == "client":
                raise RuntimeError("connection pool closed")
            return delete(entity_type, phase=phase)

        with patch.object(populated, "delete_seed_records", side_effect=flaky_delete):
            report = DataManagementService(populated, catalog, env).reset()

        assert [f.entity_type for f in report.failures] == ["client"]
        assert "connection pool closed" in report.failures[0].message
        assert report.total_removed == 7
        assert report.remaining_seed_count == 3
