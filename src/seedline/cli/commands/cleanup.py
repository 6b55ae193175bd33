"""seedline cleanup command - Remove seed data selectively."""

from __future__ import annotations

import click

from seedline.cli.errors import exit_with_result
from seedline.cli.options import env_option, format_option, open_engine
from seedline.cli.output import print_result


@click.command()
@env_option
@click.option("--phase", default=None, help="Only remove seed data of this phase")
@click.option("--type", "entity_type", default=None, help="Only remove this entity type")
@click.option(
    "--confirm",
    is_flag=True,
    default=False,
    help="Confirm deletion (required for production-like environments)",
)
@click.option("--dry-run", is_flag=True, default=False, help="Count without deleting")
@format_option
def cleanup(
    environment: str | None,
    phase: str | None,
    entity_type: str | None,
    confirm: bool,
    dry_run: bool,
    output_format: str,
) -> None:
    """Remove seed data scoped to a phase and/or entity type.

    Only records flagged as seed data are ever removed. A failure on one
    entity type is reported and the remaining types are still processed.

    Examples:

        seedline cleanup --phase payroll

        seedline cleanup --type shift --dry-run

        seedline cleanup --env production-like --phase expenses --confirm
    """
    with open_engine(environment) as engine:
        result = engine.cleanup(
            phase=phase, entity_type=entity_type, confirm=confirm, dry_run=dry_run
        )
    print_result(result, output_format)
    exit_with_result(result, output_format)
