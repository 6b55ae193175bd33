"""seedline generate command - Create seed data for phases."""

from __future__ import annotations

from dataclasses import dataclass

import click

from seedline.cli.errors import CLIError, exit_with_result
from seedline.cli.options import env_option, format_option, open_engine, phase_option
from seedline.cli.output import info, print_result
from seedline.config import VolumeConfiguration, VolumePreset


@dataclass
class GenerateOptions:
    """Grouped generate CLI options."""

    environment: str | None
    phases: tuple[str, ...]
    volume: str | None
    counts: tuple[str, ...]
    incremental: bool
    seed: int | None
    output_format: str


def parse_counts(values: tuple[str, ...]) -> dict[str, int]:
    """Parse ``TYPE=N`` pairs into a count map.

    Raises:
        click.BadParameter: On a malformed pair or a non-integer count.
    """
    counts: dict[str, int] = {}
    for value in values:
        entity_type, sep, raw = value.partition("=")
        if not sep or not entity_type.strip():
            raise click.BadParameter(f"expected TYPE=N, got '{value}'", param_hint="--count")
        try:
            counts[entity_type.strip()] = int(raw)
        except ValueError:
            raise click.BadParameter(
                f"count for '{entity_type}' must be an integer, got '{raw}'",
                param_hint="--count",
            ) from None
    return counts


def _build_volume(opts: GenerateOptions) -> VolumeConfiguration:
    if opts.volume and opts.counts:
        raise CLIError("Use either --volume or --count, not both", exit_code=2)
    if opts.counts:
        return VolumeConfiguration(counts=parse_counts(opts.counts))
    return VolumeConfiguration(preset=VolumePreset(opts.volume or VolumePreset.SMALL.value))


def _run_generate(opts: GenerateOptions) -> None:
    volume = _build_volume(opts)
    with open_engine(opts.environment, seed=opts.seed) as engine:
        if opts.output_format == "table":
            mode = "incremental" if opts.incremental else "full"
            info(f"Generating seed data ({mode}) in '{engine.environment.name}'...")
        result = engine.generate(opts.phases, volume, incremental=opts.incremental)
    print_result(result, opts.output_format)
    exit_with_result(result, opts.output_format)


@click.command()
@env_option
@phase_option
@click.option(
    "--volume",
    type=click.Choice([p.value for p in VolumePreset]),
    default=None,
    help="Volume preset [default: small]",
)
@click.option(
    "--count",
    "counts",
    multiple=True,
    metavar="TYPE=N",
    help="Explicit count for one entity type (repeatable); other types get 0",
)
@click.option(
    "--incremental",
    is_flag=True,
    default=False,
    help="Keep existing seed data and reference it from new entities",
)
@click.option("--seed", type=int, default=None, help="Random seed for reproducible data")
@format_option
def generate(
    environment: str | None,
    phases: tuple[str, ...],
    volume: str | None,
    counts: tuple[str, ...],
    incremental: bool,
    seed: int | None,
    output_format: str,
) -> None:
    """Generate seed data for phases and their required dependencies.

    Examples:

        seedline generate --phase scheduling

        seedline generate --phase payroll --phase expenses --volume medium

        seedline generate --phase client-portal --count client=25 --incremental
    """
    opts = GenerateOptions(
        environment=environment,
        phases=phases,
        volume=volume,
        counts=counts,
        incremental=incremental,
        seed=seed,
        output_format=output_format,
    )
    _run_generate(opts)
