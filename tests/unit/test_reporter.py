"""Unit tests for TestReporter."""

from __future__ import annotations

import json
from io import StringIO

import pytest
from rich.console import Console

from seedline.integration import TestReporter
from seedline.models import CoverageBreakdown, CoverageReport, ResponseLogEntry, TestResult
from seedline.models import TestStatus

pytestmark = pytest.mark.unit


def _result(name: str, phase: str, status: TestStatus, **kwargs: object) -> TestResult:
    return TestResult(name=name, phase=phase, status=status, **kwargs)  # type: ignore[arg-type]


@pytest.fixture
def results() -> list[TestResult]:
    return [
        _result("client: list", "client-portal", TestStatus.PASSED, duration_ms=12),
        _result(
            "shift: create",
            "scheduling",
            TestStatus.FAILED,
            message="expected HTTP 201, got 422",
            response_log=[
                ResponseLogEntry(method="POST", path="/shifts", status_code=422, body={})
            ],
            db_snapshot={"captured_at": "now", "seed_counts": {"shift": 20, "client": 0}},
        ),
        _result("shift: list", "scheduling", TestStatus.PASSED),
        _result("timesheet: create", "payroll", TestStatus.SKIPPED, message="no worker"),
    ]


@pytest.fixture
def coverage() -> CoverageReport:
    return CoverageReport(
        total=4,
        tested=3,
        untested=1,
        percentage=75.0,
        by_phase={"scheduling": CoverageBreakdown(total=4, tested=3, untested=1, percentage=75)},
    )


class TestTestReporter:
    """Tests for filtering and summaries."""

    def test_summary(self, results: list[TestResult]) -> None:
        assert TestReporter(results).summary() == {
            "total": 4,
            "passed": 2,
            "failed": 1,
            "skipped": 1,
        }

    def test_filter_by_phase_is_exact(self, results: list[TestResult]) -> None:
        reporter = TestReporter(results)
        assert [r.name for r in reporter.filter_by_phase("scheduling").results] == [
            "shift: create",
            "shift: list",
        ]
        assert len(reporter.filter_by_phase("schedul")) == 0

    def test_filter_by_status_accepts_strings(self, results: list[TestResult]) -> None:
        reporter = TestReporter(results)
        assert len(reporter.filter_by_status("skipped")) == 1
        assert len(reporter.filter_by_status(TestStatus.PASSED)) == 2

    def test_phases_in_result_order(self, results: list[TestResult]) -> None:
        assert TestReporter(results).phases() == ["client-portal", "scheduling", "payroll"]

    def test_failed(self, results: list[TestResult]) -> None:
        assert TestReporter(results).failed
        assert not TestReporter(results).filter_by_phase("payroll").failed


class TestReporterOutput:
    """Tests for JSON and Rich rendering."""

    def test_to_json(self, results: list[TestResult], coverage: CoverageReport) -> None:
        data = json.loads(TestReporter(results, coverage).to_json())
        assert data["summary"]["failed"] == 1
        assert data["by_phase"]["scheduling"] == {
            "total": 2,
            "passed": 1,
            "failed": 1,
            "skipped": 0,
        }
        assert data["results"][1]["status"] == "failed"
        assert data["coverage"]["percentage"] == 75.0

    def test_to_json_compact_without_coverage(self, results: list[TestResult]) -> None:
        text = TestReporter(results).to_json(pretty=False)
        assert "\n" not in text
        assert "coverage" not in json.loads(text)

    def test_render(self, results: list[TestResult], coverage: CoverageReport) -> None:
        buffer = StringIO()
        console = Console(file=buffer, width=160, no_color=True)

        TestReporter(results, coverage).render(console)

        output = buffer.getvalue()
        assert "SEEDLINE INTEGRATION TEST REPORT" in output
        assert "shift: create" in output
        assert "Failed Test Details" in output
        assert "POST /shifts -> 422" in output
        assert "{'shift': 20}" in output
        assert "3/4 endpoints" in output
