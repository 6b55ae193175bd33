"""Integration test result aggregation and output.

Rich table and JSON output for test runs, plus phase and status filtering.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from seedline.models import CoverageReport, TestResult, TestStatus


def _status_icon(status: TestStatus) -> str:
    """Get icon for test status."""
    icons = {
        TestStatus.PASSED: "✅",
        TestStatus.FAILED: "❌",
        TestStatus.SKIPPED: "⏭️",
    }
    return icons.get(status, "❓")


def _status_color(status: TestStatus) -> str:
    """Get color for test status."""
    colors = {
        TestStatus.PASSED: "green",
        TestStatus.FAILED: "red",
        TestStatus.SKIPPED: "dim",
    }
    return colors.get(status, "white")


class TestReporter:
    """Aggregates TestResults for one run.

    Filtered views are new reporters over a subset of the results; the
    underlying result order is preserved.

    Args:
        results: Test results in execution order.
        coverage: Coverage report for the run, if available.

    Example:
        >>> reporter = TestReporter(results)
        >>> reporter.filter_by_phase("payroll").summary()
        {'total': 4, 'passed': 4, 'failed': 0, 'skipped': 0}
    """

    __test__ = False

    def __init__(
        self,
        results: Iterable[TestResult],
        coverage: CoverageReport | None = None,
    ) -> None:
        self.results = list(results)
        self.coverage = coverage

    def __len__(self) -> int:
        return len(self.results)

    def filter_by_phase(self, phase: str) -> TestReporter:
        """Results whose phase equals ``phase`` exactly."""
        return TestReporter([r for r in self.results if r.phase == phase], self.coverage)

    def filter_by_status(self, status: TestStatus | str) -> TestReporter:
        wanted = TestStatus(status)
        return TestReporter([r for r in self.results if r.status is wanted], self.coverage)

    def phases(self) -> list[str]:
        seen: dict[str, None] = {}
        for result in self.results:
            seen.setdefault(result.phase, None)
        return list(seen)

    def summary(self) -> dict[str, int]:
        counts = {status.value: 0 for status in TestStatus}
        for result in self.results:
            counts[result.status.value] += 1
        return {"total": len(self.results), **counts}

    @property
    def failed(self) -> bool:
        return any(r.status is TestStatus.FAILED for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        """Convert the run to a dictionary for JSON serialization."""
        data: dict[str, Any] = {
            "summary": self.summary(),
            "by_phase": {
                phase: self.filter_by_phase(phase).summary() for phase in self.phases()
            },
            "results": [r.model_dump(mode="json") for r in self.results],
        }
        if self.coverage is not None:
            data["coverage"] = self.coverage.model_dump(mode="json")
        return data

    def to_json(self, pretty: bool = True) -> str:
        """Format the run as JSON.

        Args:
            pretty: Whether to use indentation

        Returns:
            JSON string representation
        """
        if pretty:
            return json.dumps(self.to_dict(), indent=2, default=str)
        return json.dumps(self.to_dict(), default=str)

    def render(self, console: Console | None = None) -> None:
        """Render the run as a Rich panel, results table and coverage table.

        Args:
            console: Optional Rich console (creates one if not provided)
        """
        if console is None:
            console = Console()

        summary = self.summary()
        header_text = Text()
        header_text.append("SEEDLINE INTEGRATION TEST REPORT\n\n", style="bold")
        status = TestStatus.FAILED if self.failed else TestStatus.PASSED
        header_text.append(f"Status: {_status_icon(status)} ", style=_status_color(status))
        header_text.append(status.value.upper(), style=f"bold {_status_color(status)}")
        header_text.append(
            f"\nTests: {summary['passed']} passed, {summary['failed']} failed, "
            f"{summary['skipped']} skipped"
        )
        if self.coverage is not None:
            header_text.append(
                f"\nCoverage: {self.coverage.tested}/{self.coverage.total} endpoints "
                f"({self.coverage.percentage:.1f}%)"
            )
        console.print(Panel(header_text, title="[bold]Test Results[/bold]"))

        table = Table(show_header=True, header_style="bold")
        table.add_column("Status", width=3, justify="center")
        table.add_column("Phase", min_width=12)
        table.add_column("Test", min_width=20)
        table.add_column("Message", min_width=30)
        table.add_column("Duration", justify="right", width=10)

        for result in self.results:
            color = _status_color(result.status)
            duration = f"{result.duration_ms}ms" if result.duration_ms > 0 else "-"
            table.add_row(
                _status_icon(result.status),
                result.phase,
                Text(result.name, style=color),
                Text(result.message or "-", style="dim" if not result.message else ""),
                duration,
            )
        console.print(table)

        if self.coverage is not None and self.coverage.by_phase:
            coverage_table = Table(show_header=True, header_style="bold", title="Coverage")
            coverage_table.add_column("Phase", min_width=12)
            coverage_table.add_column("Tested", justify="right")
            coverage_table.add_column("Total", justify="right")
            coverage_table.add_column("%", justify="right")
            for phase, breakdown in self.coverage.by_phase.items():
                coverage_table.add_row(
                    phase,
                    str(breakdown.tested),
                    str(breakdown.total),
                    f"{breakdown.percentage:.1f}",
                )
            console.print(coverage_table)

        failed = [r for r in self.results if r.status is TestStatus.FAILED]
        if failed:
            console.print()
            console.print("[bold red]Failed Test Details:[/bold red]")
            for result in failed:
                console.print(f"  [red]• {result.name}[/red]: {result.message}")
                if result.response_log:
                    last = result.response_log[-1]
                    console.print(
                        f"    last response: {last.method} {last.path} -> {last.status_code}",
                        style="dim",
                    )
                if result.db_snapshot:
                    counts = result.db_snapshot.get("seed_counts", {})
                    nonzero = {k: v for k, v in counts.items() if v}
                    console.print(f"    seed counts: {nonzero}", style="dim")
