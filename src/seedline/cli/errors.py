"""CLI error handling for seedline.

This module maps operation outcomes and seedline exceptions to user-friendly
messages and exit codes:

- 0: every operation succeeded
- 1: completed, with recorded per-item failures
- 2: aborted before any mutation (connectivity, confirmation, configuration)
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from seedline.cli.output import error, success, warning
from seedline.errors import OperationAbortedError, SeedlineError
from seedline.models import OperationOutcome, OperationResult

EXIT_SUCCESS = 0
EXIT_FAILURES = 1  # Completed with per-item failures
EXIT_ABORTED = 2  # Aborted before any state change


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_FAILURES) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting.

        Args:
            file: Output file (unused, for Click compatibility).
        """
        error(self.format_message())


def handle_seedline_error(err: SeedlineError) -> NoReturn:
    """Convert a seedline exception raised outside an operation into a CLIError.

    Raises:
        CLIError: Exit code 2 for aborts, 1 otherwise.
    """
    exit_code = EXIT_ABORTED if isinstance(err, OperationAbortedError) else EXIT_FAILURES
    raise CLIError(str(err), exit_code=exit_code)


def exit_with_result(result: OperationResult, output_format: str = "table") -> NoReturn:
    """Print a closing message for table output and exit with the outcome's code.

    Note:
        This function never returns - it always calls sys.exit().
    """
    if output_format == "table":
        if result.outcome is OperationOutcome.SUCCESS:
            success(f"{result.operation.capitalize()} completed")
        elif result.outcome is OperationOutcome.COMPLETED_WITH_FAILURES:
            warning(f"{result.operation.capitalize()} completed with failures")
        else:
            error(f"{result.operation.capitalize()} aborted")
    sys.exit(result.exit_code)
