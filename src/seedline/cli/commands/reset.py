"""seedline reset command - Remove all seed data."""

from __future__ import annotations

import click

from seedline.cli.errors import exit_with_result
from seedline.cli.options import env_option, format_option, open_engine
from seedline.cli.output import print_result


@click.command()
@env_option
@click.option(
    "--confirm",
    is_flag=True,
    default=False,
    help="Confirm deletion (required for production-like environments)",
)
@click.option("--dry-run", is_flag=True, default=False, help="Count without deleting")
@format_option
def reset(environment: str | None, confirm: bool, dry_run: bool, output_format: str) -> None:
    """Remove every seed record; production records are untouched.

    Examples:

        seedline reset

        seedline reset --env production-like --confirm
    """
    with open_engine(environment) as engine:
        result = engine.reset(confirm=confirm, dry_run=dry_run)
    print_result(result, output_format)
    exit_with_result(result, output_format)
