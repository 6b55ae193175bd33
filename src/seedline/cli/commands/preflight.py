"""seedline preflight command - API and database reachability checks."""

from __future__ import annotations

import click

from seedline.cli.errors import exit_with_result
from seedline.cli.options import env_option, format_option, open_engine
from seedline.cli.output import print_result


@click.command()
@env_option
@format_option
def preflight(environment: str | None, output_format: str) -> None:
    """Check that the environment's API and database are reachable.

    Runs the same checks that gate generate, test and cleanup, but reports
    both results instead of stopping at the first failure.

    Examples:

        seedline preflight --env staging

        seedline preflight --format json
    """
    with open_engine(environment) as engine:
        result = engine.preflight()
    print_result(result, output_format)
    exit_with_result(result, output_format)
