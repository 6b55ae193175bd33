"""seedline validate command - Audit stored seed data for broken references."""

from __future__ import annotations

import click

from seedline.cli.errors import exit_with_result
from seedline.cli.options import env_option, format_option, open_engine, phase_option
from seedline.cli.output import print_result


@click.command()
@env_option
@phase_option
@format_option
def validate(environment: str | None, phases: tuple[str, ...], output_format: str) -> None:
    """Check that every stored seed reference points at an existing record.

    Reads seed records of the requested phases back from the API and
    resolves each reference field against its target type. Exits 1 when
    any reference is missing or dangling.

    Examples:

        seedline validate

        seedline validate --phase payroll --format json
    """
    with open_engine(environment) as engine:
        result = engine.validate(phases)
    print_result(result, output_format)
    exit_with_result(result, output_format)
