"""Rich console output utilities for the seedline CLI.

This module provides formatted console output with Rich, supporting colored
success/error/warning messages, respecting the NO_COLOR environment variable,
and rendering operation reports as tables or JSON.
"""

from __future__ import annotations

import json
import os
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from seedline.integration.reporter import TestReporter
from seedline.models import (
    CheckStatus,
    CleanupReport,
    ConnectivityResult,
    GenerationReport,
    IntegrityReport,
    OperationOutcome,
    OperationResult,
    StatusReport,
    TestRunReport,
)

# Rich automatically respects NO_COLOR, but we also support --no-color flag
_force_no_color = os.environ.get("NO_COLOR") is not None


def create_console(no_color: bool = False) -> Console:
    """Create a Rich Console instance with appropriate color settings.

    Args:
        no_color: If True, disable colored output. Also respects NO_COLOR env var.

    Returns:
        Configured Console instance.
    """
    force_terminal = None
    if no_color or _force_no_color:
        force_terminal = False
    return Console(force_terminal=force_terminal, no_color=no_color or _force_no_color)


# Default console instance
console = create_console()


def success(message: str, **kwargs: Any) -> None:
    """Print a success message with green checkmark.

    Example:
        >>> success("Seed data generated")
        ✓ Seed data generated
    """
    console.print(f"[green]✓[/green] {message}", **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print an error message with red X.

    Example:
        >>> error("Unknown environment 'qa'")
        ✗ Unknown environment 'qa'
    """
    console.print(f"[red]✗[/red] {message}", **kwargs)


def warning(message: str, **kwargs: Any) -> None:
    """Print a warning message with yellow triangle."""
    console.print(f"[yellow]⚠[/yellow] {message}", **kwargs)


def info(message: str, **kwargs: Any) -> None:
    """Print an informational message."""
    console.print(message, **kwargs)


def set_no_color(no_color: bool) -> None:
    """Update the global console to enable/disable colors.

    Note:
        This updates the module-level console instance.
    """
    global console
    console = create_console(no_color=no_color)


def _outcome_style(outcome: OperationOutcome) -> str:
    return {
        OperationOutcome.SUCCESS: "green",
        OperationOutcome.COMPLETED_WITH_FAILURES: "yellow",
        OperationOutcome.ABORTED: "red",
    }[outcome]


def _header(result: OperationResult, *lines: str) -> Panel:
    style = _outcome_style(result.outcome)
    text = Text()
    text.append(f"SEEDLINE {result.operation.upper()}\n\n", style="bold")
    text.append(f"Environment: {result.environment}\n")
    text.append("Outcome: ")
    text.append(result.outcome.value.upper(), style=f"bold {style}")
    for line in lines:
        text.append(f"\n{line}")
    return Panel(text, title=f"[bold]{result.operation.capitalize()} Results[/bold]")


def render_generation(result: OperationResult, report: GenerationReport) -> None:
    console.print(
        _header(
            result,
            f"Phases: {', '.join(report.phases)}",
            f"Created: {report.created_total} "
            f"(seed records {report.seed_count_before} -> {report.seed_count_after})",
        )
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("Phase", min_width=12)
    table.add_column("Entity type", min_width=16)
    table.add_column("Requested", justify="right")
    table.add_column("Created", justify="right")
    for phase, per_type in report.created.items():
        for entity_type, count in per_type.items():
            requested = report.requested.get(entity_type, 0)
            style = "" if count == requested else "yellow"
            table.add_row(phase, entity_type, str(requested), Text(str(count), style=style))
    console.print(table)

    if report.errors:
        console.print()
        console.print(f"[bold red]Generation Errors ({len(report.errors)}):[/bold red]")
        for err in report.errors:
            console.print(f"  [red]• {err.entity_type}[/red]: {err.message}")


def render_cleanup(result: OperationResult, report: CleanupReport) -> None:
    scope = report.entity_type or report.phase or "all entity types"
    verb = "Would remove" if report.dry_run else "Removed"
    lines = [f"Scope: {scope}", f"{verb}: {report.total_removed}"]
    if report.remaining_seed_count is not None:
        lines.append(f"Remaining seed records: {report.remaining_seed_count}")
    console.print(_header(result, *lines))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Status", width=3, justify="center")
    table.add_column("Entity type", min_width=16)
    table.add_column(verb, justify="right")
    table.add_column("Message", min_width=30)
    for entity_type, count in report.removed.items():
        table.add_row("✅", entity_type, str(count), Text("-", style="dim"))
    for failure in report.failures:
        table.add_row("❌", Text(failure.entity_type, style="red"), "-", failure.message)
    console.print(table)


def render_status(result: OperationResult, report: StatusReport) -> None:
    console.print(
        _header(
            result,
            f"Seed records: {report.seed_total}",
            f"Production records: {report.production_total}",
        )
    )
    table = Table(show_header=True, header_style="bold")
    table.add_column("Phase", min_width=12)
    table.add_column("Entity type", min_width=16)
    table.add_column("Seed", justify="right")
    table.add_column("Production", justify="right")
    for status in report.types:
        table.add_row(status.phase, status.entity_type, str(status.seed), str(status.production))
    console.print(table)


def render_integrity(result: OperationResult, report: IntegrityReport) -> None:
    console.print(
        _header(
            result,
            f"Phases: {', '.join(report.phases)}",
            f"Seed records checked: {report.checked_total}",
            f"Unresolved references: {len(report.violations)}",
        )
    )
    if not report.violations:
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Entity type", min_width=16)
    table.add_column("Record", min_width=12)
    table.add_column("Field", min_width=12)
    table.add_column("Problem", min_width=30)
    for violation in report.violations:
        problem = (
            "required reference missing"
            if violation.value is None
            else f"no {violation.target} with id {violation.value}"
        )
        table.add_row(
            violation.entity_type, violation.entity_id, violation.field, Text(problem, style="red")
        )
    console.print(table)


def render_connectivity(result: OperationResult, report: ConnectivityResult) -> None:
    console.print(
        _header(
            result,
            f"API: {'reachable' if report.api_reachable else 'unreachable'}",
            f"Database: {'reachable' if report.db_reachable else 'unreachable'}",
        )
    )
    table = Table(show_header=True, header_style="bold")
    table.add_column("Status", width=3, justify="center")
    table.add_column("Check", min_width=12)
    table.add_column("Message", min_width=30)
    table.add_column("Duration", justify="right", width=10)
    for check in report.checks:
        icon = "✅" if check.status is CheckStatus.PASSED else "❌"
        duration = f"{check.duration_ms}ms" if check.duration_ms > 0 else "-"
        table.add_row(icon, check.name, check.message or "-", duration)
    console.print(table)


def print_result(result: OperationResult, output_format: str = "table") -> None:
    """Print an operation result in the requested format.

    Args:
        result: OperationResult to display
        output_format: Output format ("table" or "json")
    """
    report = result.report

    if output_format == "json":
        if isinstance(report, TestRunReport):
            data: dict[str, Any] = {
                "operation": result.operation,
                "environment": result.environment,
                "outcome": result.outcome.value,
                **TestReporter(report.results, report.coverage).to_dict(),
            }
        else:
            data = result.model_dump(mode="json")
        # Write directly to the console's file to keep the output parseable
        json_str = json.dumps(data, indent=2, default=str)
        if console.file is not None:
            console.file.write(json_str + "\n")
        else:
            print(json_str)
        return

    if result.error is not None:
        error(result.error)
    if isinstance(report, GenerationReport):
        render_generation(result, report)
    elif isinstance(report, CleanupReport):
        render_cleanup(result, report)
    elif isinstance(report, StatusReport):
        render_status(result, report)
    elif isinstance(report, IntegrityReport):
        render_integrity(result, report)
    elif isinstance(report, ConnectivityResult):
        render_connectivity(result, report)
    elif isinstance(report, TestRunReport):
        TestReporter(report.results, report.coverage).render(console)
