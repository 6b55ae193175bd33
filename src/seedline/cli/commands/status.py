"""seedline status command - Seed vs production record counts."""

from __future__ import annotations

import click

from seedline.cli.errors import exit_with_result
from seedline.cli.options import env_option, format_option, open_engine
from seedline.cli.output import print_result


@click.command()
@env_option
@format_option
def status(environment: str | None, output_format: str) -> None:
    """Show seed and production record counts per entity type."""
    with open_engine(environment) as engine:
        result = engine.status()
    print_result(result, output_format)
    exit_with_result(result, output_format)
