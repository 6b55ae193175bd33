"""seedline test command - Run integration tests against seeded data."""

from __future__ import annotations

import click

from seedline.cli.errors import exit_with_result
from seedline.cli.options import env_option, format_option, open_engine, phase_option
from seedline.cli.output import info, print_result


@click.command()
@env_option
@phase_option
@click.option("--seed", type=int, default=None, help="Random seed for test payloads")
@format_option
def test(
    environment: str | None,
    phases: tuple[str, ...],
    seed: int | None,
    output_format: str,
) -> None:
    """Run integration tests for the requested phases.

    Each test calls the live API, checks the resulting state and logs every
    request and response. Failed tests include a snapshot of seed record
    counts. Endpoint coverage is reported per phase.

    Examples:

        seedline test --phase scheduling

        seedline test --format json > results.json
    """
    with open_engine(environment, seed=seed) as engine:
        if output_format == "table":
            info(f"Running integration tests in '{engine.environment.name}'...")
        result = engine.test(phases)
    print_result(result, output_format)
    exit_with_result(result, output_format)
