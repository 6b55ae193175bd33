"""Unit tests for the integration test runner and built-in suites."""

from __future__ import annotations

import pytest
from fakes import InMemoryBackend

from seedline.config import EnvironmentConfig, VolumeConfiguration
from seedline.context import RunContext
from seedline.entities import EntityCatalog
from seedline.factories import FactorySet
from seedline.generator import SeedDataGenerator
from seedline.integration import (
    CoverageTracker,
    EndpointRegistry,
    IntegrationTest,
    IntegrationTestRunner,
    TestSession,
)
from seedline.integration.suites import build_suites, phase_suite
from seedline.models import TestStatus
from seedline.phases import PhaseDependencyGraph
from seedline.registry import EntityIdentityRegistry

pytestmark = pytest.mark.unit


@pytest.fixture
def runner(backend: InMemoryBackend, catalog: EntityCatalog) -> IntegrationTestRunner:
    return IntegrationTestRunner(backend, backend, catalog, CoverageTracker(EndpointRegistry()))


def _passing(session: TestSession) -> None:
    response = session.request("GET", "/clients")
    session.expect_status(response, 200)


class TestIntegrationTestRunner:
    """Tests for IntegrationTestRunner."""

    def test_one_result_per_test_in_order(self, runner: IntegrationTestRunner) -> None:
        tests = [
            IntegrationTest(name="first", phase="client-portal", body=_passing),
            IntegrationTest(name="second", phase="client-portal", body=_passing),
            IntegrationTest(name="third", phase="payroll", body=_passing, skip_reason="later"),
        ]
        results = runner.run(tests)
        assert [r.name for r in results] == ["first", "second", "third"]
        assert [r.status for r in results] == [
            TestStatus.PASSED,
            TestStatus.PASSED,
            TestStatus.SKIPPED,
        ]
        assert results[2].message == "later"

    def test_passing_test_logs_request_and_response(
        self, runner: IntegrationTestRunner
    ) -> None:
        result = runner.run_test(IntegrationTest(name="t", phase="client-portal", body=_passing))
        assert result.status is TestStatus.PASSED
        assert result.request_log[0].path == "/clients"
        assert result.response_log[0].status_code == 200
        assert result.checks == 1
        assert result.db_snapshot is None

    def test_failed_check_captures_snapshot(
        self, runner: IntegrationTestRunner, backend: InMemoryBackend
    ) -> None:
        backend.add("client", {}, seed=True)

        def body(session: TestSession) -> None:
            session.expect_status(session.request("GET", "/nowhere"), 200)

        result = runner.run_test(IntegrationTest(name="t", phase="client-portal", body=body))
        assert result.status is TestStatus.FAILED
        assert "got 404" in result.message
        assert result.db_snapshot is not None
        assert result.db_snapshot["seed_counts"]["client"] == 1
        assert result.response_log[-1].status_code == 404

    def test_test_without_api_call_fails_with_probe(
        self, runner: IntegrationTestRunner, backend: InMemoryBackend
    ) -> None:
        def body(session: TestSession) -> None:
            session.check(True, "trivially true")

        result = runner.run_test(IntegrationTest(name="t", phase="client-portal", body=body))
        assert result.status is TestStatus.FAILED
        assert "no API call" in result.message
        assert result.request_log[0].path == "/health"
        assert result.response_log[0].status_code == 200

    def test_test_without_check_fails(self, runner: IntegrationTestRunner) -> None:
        def body(session: TestSession) -> None:
            session.request("GET", "/clients")

        result = runner.run_test(IntegrationTest(name="t", phase="client-portal", body=body))
        assert result.status is TestStatus.FAILED
        assert "no state check" in result.message

    def test_unexpected_exception_recorded(self, runner: IntegrationTestRunner) -> None:
        def body(session: TestSession) -> None:
            session.request("GET", "/clients")
            raise KeyError("id")

        result = runner.run_test(IntegrationTest(name="t", phase="client-portal", body=body))
        assert result.status is TestStatus.FAILED
        assert result.message.startswith("Unexpected KeyError")

    def test_runtime_skip(self, runner: IntegrationTestRunner) -> None:
        def body(session: TestSession) -> None:
            session.skip("nothing seeded")

        result = runner.run_test(IntegrationTest(name="t", phase="client-portal", body=body))
        assert result.status is TestStatus.SKIPPED
        assert result.message == "nothing seeded"

    def test_coverage_recorded(self, runner: IntegrationTestRunner) -> None:
        runner.run_test(IntegrationTest(name="t", phase="client-portal", body=_passing))
        assert runner.coverage.hits("GET /clients") == 1

    def test_snapshot_survives_store_errors(
        self, runner: IntegrationTestRunner, backend: InMemoryBackend
    ) -> None:
        backend.fail_counts("shift")

        def body(session: TestSession) -> None:
            session.check(session.request("GET", "/clients").status_code == 500, "want 500")

        result = runner.run_test(IntegrationTest(name="t", phase="client-portal", body=body))
        assert result.db_snapshot is not None
        assert "shift" in result.db_snapshot["errors"]
        assert "shift" not in result.db_snapshot["seed_counts"]


class TestBuiltInSuites:
    """Tests for the per-entity-type smoke suites."""

    def test_two_tests_per_type(self, catalog: EntityCatalog) -> None:
        factories = FactorySet(catalog, EntityIdentityRegistry(), seed=1)
        tests = phase_suite("client-portal", catalog, factories)
        assert [t.name for t in tests] == [
            "organization: list seed records",
            "organization: create, read and update",
            "user: list seed records",
            "user: create, read and update",
            "client: list seed records",
            "client: create, read and update",
        ]
        assert {t.phase for t in tests} == {"client-portal"}

    def test_only_requested_phases(self, catalog: EntityCatalog) -> None:
        factories = FactorySet(catalog, EntityIdentityRegistry(), seed=1)
        tests = build_suites(["payroll"], catalog, factories)
        assert {t.phase for t in tests} == {"payroll"}

    def test_suites_pass_against_seeded_backend(
        self,
        backend: InMemoryBackend,
        catalog: EntityCatalog,
        graph: PhaseDependencyGraph,
        env: EnvironmentConfig,
        runner: IntegrationTestRunner,
    ) -> None:
        context = RunContext(env)
        SeedDataGenerator(backend, backend, catalog, graph, context, seed=5).generate(
            ["scheduling"], VolumeConfiguration.from_preset("small")
        )
        factories = FactorySet(catalog, context.registry, seed=6)

        results = runner.run(build_suites(["client-portal", "scheduling"], catalog, factories))

        assert results
        assert all(r.status is TestStatus.PASSED for r in results), [
            (r.name, r.message) for r in results if r.status is not TestStatus.PASSED
        ]
        assert runner.coverage.hits("PUT /shifts/:id") == 1

    def test_crud_test_skips_without_required_reference(
        self, runner: IntegrationTestRunner, catalog: EntityCatalog
    ) -> None:
        factories = FactorySet(catalog, EntityIdentityRegistry(), seed=1)
        crud = [t for t in phase_suite("payroll", catalog, factories) if "create" in t.name][0]

        result = runner.run_test(crud)

        assert result.status is TestStatus.SKIPPED
        assert "no seeded worker" in result.message
