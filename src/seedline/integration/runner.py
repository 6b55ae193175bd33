"""Integration test execution against the live API.

Each declared test runs inside a TestSession that logs every request and
response, records endpoint coverage and counts state checks. A test must
make at least one API call and perform at least one state check. Failures
capture a point-of-failure snapshot of seed record counts.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import structlog

from seedline.backend import BackendResponse, EntityApi, EntityStore
from seedline.entities import EntityCatalog
from seedline.errors import TestExecutionError
from seedline.integration.coverage import CoverageTracker
from seedline.models import RequestLogEntry, ResponseLogEntry, TestResult, TestStatus

logger = structlog.get_logger(__name__)

HEALTH_PATH = "/health"


class TestSkipped(Exception):
    """Raised by a test body to mark the test as skipped."""

    __test__ = False


@dataclass(frozen=True)
class IntegrationTest:
    """A declared integration test.

    Attributes:
        name: Unique, human-readable test name
        phase: Phase under test
        body: Callable receiving a TestSession
        skip_reason: If set, the test is reported as skipped without running
    """

    __test__ = False

    name: str
    phase: str
    body: Callable[[TestSession], None]
    skip_reason: str | None = None


class TestSession:
    """Request/response logging and assertions for one test."""

    __test__ = False

    def __init__(
        self,
        test: IntegrationTest,
        api: EntityApi,
        store: EntityStore,
        coverage: CoverageTracker,
        catalog: EntityCatalog,
    ) -> None:
        self.test = test
        self.api = api
        self.store = store
        self.coverage = coverage
        self.catalog = catalog
        self.request_log: list[RequestLogEntry] = []
        self.response_log: list[ResponseLogEntry] = []
        self.checks = 0
        self._seed_ids: dict[str, list[str]] = {}

    def request(
        self, method: str, path: str, payload: Mapping[str, Any] | None = None
    ) -> BackendResponse:
        """Issue an API call, logging both sides of the exchange."""
        method = method.upper()
        self.request_log.append(
            RequestLogEntry(method=method, path=path, payload=dict(payload) if payload else None)
        )
        self.coverage.record(method, path)
        start = time.monotonic()
        try:
            response = self.api.request(method, path, payload)
        except Exception as exc:
            self.response_log.append(
                ResponseLogEntry(
                    method=method,
                    path=path,
                    status_code=0,
                    body={"error": str(exc)},
                    duration_ms=int((time.monotonic() - start) * 1000),
                )
            )
            raise
        self.response_log.append(
            ResponseLogEntry(
                method=method,
                path=path,
                status_code=response.status_code,
                body=response.body,
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        )
        return response

    def check(self, condition: bool, message: str) -> None:
        """Assert a condition about API or store state."""
        self.checks += 1
        if not condition:
            raise TestExecutionError(self.test.name, message)

    def expect_status(self, response: BackendResponse, *expected: int) -> BackendResponse:
        """Assert the response status is one of ``expected``."""
        self.check(
            response.status_code in expected,
            f"expected HTTP {'/'.join(map(str, expected))}, got {response.status_code}",
        )
        return response

    def seed_count(self, entity_type: str) -> int:
        return self.store.count(entity_type, is_seed_data=True)

    def seed_id(self, entity_type: str) -> str | None:
        """Id of an existing seed record of a type, for use as a reference."""
        if entity_type not in self._seed_ids:
            records = self.store.list_records(entity_type, is_seed_data=True)
            self._seed_ids[entity_type] = [str(r["id"]) for r in records if "id" in r]
        ids = self._seed_ids[entity_type]
        return ids[0] if ids else None

    def snapshot(self) -> dict[str, Any]:
        return capture_snapshot(self.store, self.catalog)

    def skip(self, reason: str) -> None:
        raise TestSkipped(reason)


def capture_snapshot(store: EntityStore, catalog: EntityCatalog) -> dict[str, Any]:
    """Seed record counts per entity type at this moment.

    Types whose count cannot be read are listed under ``errors`` instead.
    """
    counts: dict[str, int] = {}
    errors: dict[str, str] = {}
    for spec in catalog:
        try:
            counts[spec.name] = store.count(spec.name, is_seed_data=True)
        except Exception as exc:
            errors[spec.name] = f"{type(exc).__name__}: {exc}"
    snapshot: dict[str, Any] = {
        "captured_at": datetime.now(UTC).isoformat(),
        "seed_counts": counts,
    }
    if errors:
        snapshot["errors"] = errors
    return snapshot


def items_of(response: BackendResponse) -> list[Any] | None:
    """List payload of a collection response (bare list or ``data`` envelope)."""
    body = response.body
    if isinstance(body, Mapping):
        body = body.get("data")
    return list(body) if isinstance(body, list) else None


class IntegrationTestRunner:
    """Runs declared tests and produces exactly one TestResult per test.

    Args:
        api: Backend API.
        store: Backend store, read for failure snapshots.
        catalog: Entity catalog; snapshot covers every type.
        coverage: Coverage tracker shared with the run context.
        probe_path: Path probed on failure when a test logged no request.
    """

    def __init__(
        self,
        api: EntityApi,
        store: EntityStore,
        catalog: EntityCatalog,
        coverage: CoverageTracker,
        *,
        probe_path: str = HEALTH_PATH,
    ) -> None:
        self.api = api
        self.store = store
        self.catalog = catalog
        self.coverage = coverage
        self.probe_path = probe_path

    def run(self, tests: Iterable[IntegrationTest]) -> list[TestResult]:
        """Run tests sequentially, in declaration order."""
        results = [self.run_test(test) for test in tests]
        logger.info(
            "test_suite_completed",
            total=len(results),
            passed=sum(1 for r in results if r.status is TestStatus.PASSED),
            failed=sum(1 for r in results if r.status is TestStatus.FAILED),
            skipped=sum(1 for r in results if r.status is TestStatus.SKIPPED),
        )
        return results

    def run_test(self, test: IntegrationTest) -> TestResult:
        log = logger.bind(test=test.name, phase=test.phase)

        if test.skip_reason is not None:
            log.info("test_skipped", reason=test.skip_reason)
            return TestResult(
                name=test.name,
                phase=test.phase,
                status=TestStatus.SKIPPED,
                message=test.skip_reason,
            )

        session = TestSession(test, self.api, self.store, self.coverage, self.catalog)
        start = time.monotonic()
        log.debug("test_started")

        try:
            test.body(session)
            if not session.request_log:
                raise TestExecutionError(test.name, "test made no API call")
            if session.checks == 0:
                raise TestExecutionError(test.name, "test performed no state check")
        except TestSkipped as skipped:
            log.info("test_skipped", reason=str(skipped))
            return self._result(session, TestStatus.SKIPPED, str(skipped), start)
        except TestExecutionError as exc:
            log.warning("test_failed", reason=exc.reason)
            return self._failure(session, exc.reason, start)
        except Exception as exc:
            log.error("test_error", error=str(exc), error_type=type(exc).__name__)
            return self._failure(session, f"Unexpected {type(exc).__name__}: {exc}", start)

        log.info("test_passed", requests=len(session.request_log), checks=session.checks)
        return self._result(session, TestStatus.PASSED, "", start)

    def _failure(self, session: TestSession, message: str, start: float) -> TestResult:
        if not session.request_log:
            try:
                session.request("GET", self.probe_path)
            except Exception as exc:
                logger.warning("failure_probe_failed", test=session.test.name, error=str(exc))
        return self._result(
            session, TestStatus.FAILED, message, start, db_snapshot=session.snapshot()
        )

    def _result(
        self,
        session: TestSession,
        status: TestStatus,
        message: str,
        start: float,
        *,
        db_snapshot: dict[str, Any] | None = None,
    ) -> TestResult:
        return TestResult(
            name=session.test.name,
            phase=session.test.phase,
            status=status,
            message=message,
            request_log=session.request_log,
            response_log=session.response_log,
            db_snapshot=db_snapshot,
            checks=session.checks,
            duration_ms=int((time.monotonic() - start) * 1000),
        )

