"""Options and engine setup shared by seedline commands."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import click

from seedline.cli.errors import handle_seedline_error
from seedline.config import ENV_VAR_NAME
from seedline.engine import SeedEngine
from seedline.errors import SeedlineError

F = TypeVar("F", bound=Callable[..., Any])


def env_option(func: F) -> F:
    """Add the ``--env`` option (falls back to SEEDLINE_ENV, then development)."""
    return click.option(
        "--env",
        "environment",
        default=None,
        help=f"Target environment [default: ${ENV_VAR_NAME} or development]",
    )(func)


def format_option(func: F) -> F:
    """Add the ``--format table|json`` option."""
    return click.option(
        "--format",
        "output_format",
        type=click.Choice(["table", "json"]),
        default="table",
        help="Output format [default: table]",
    )(func)


def phase_option(func: F) -> F:
    """Add the repeatable ``--phase`` option (defaults to all phases)."""
    return click.option(
        "--phase",
        "phases",
        multiple=True,
        default=("all",),
        show_default=True,
        help="Phase to include (repeatable, or 'all')",
    )(func)


@contextmanager
def open_engine(environment: str | None, **kwargs: Any) -> Iterator[SeedEngine]:
    """Resolve the environment and yield a connected engine.

    Raises:
        CLIError: If the environment cannot be resolved.
    """
    try:
        engine = SeedEngine.connect(environment, **kwargs)
    except SeedlineError as e:
        handle_seedline_error(e)
    with engine:
        yield engine
