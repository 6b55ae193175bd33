"""CLI entry point for seedline.

This module defines the main CLI group using the LazyGroup pattern, so
``seedline --help`` does not import the engine and its dependencies.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from seedline import __version__
from seedline.cli.output import set_no_color

# Configure rich-click for better help formatting
rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True


class LazyGroup(rclick.RichGroup):
    """Click group that loads commands lazily.

    Commands are only imported when actually invoked, not at import time.

    Attributes:
        lazy_subcommands: Mapping of command names to module paths.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize LazyGroup.

        Args:
            *args: Positional arguments for parent class.
            lazy_subcommands: Mapping of command name to module path.
                Format: {"generate": "seedline.cli.commands.generate.generate"}
            **kwargs: Keyword arguments for parent class.
        """
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        commands = set(super().list_commands(ctx))
        commands.update(self.lazy_subcommands.keys())
        return sorted(commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, loading lazily if needed."""
        cmd = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if cmd is not None:
            return cmd

        if cmd_name not in self.lazy_subcommands:
            return None

        module_path = self.lazy_subcommands[cmd_name]
        module_name, attr_name = module_path.rsplit(".", 1)
        mod = importlib.import_module(module_name)
        return getattr(mod, attr_name)  # type: ignore[no-any-return]


LAZY_COMMANDS = {
    "generate": "seedline.cli.commands.generate.generate",
    "test": "seedline.cli.commands.test.test",
    "cleanup": "seedline.cli.commands.cleanup.cleanup",
    "reset": "seedline.cli.commands.reset.reset",
    "status": "seedline.cli.commands.status.status",
    "preflight": "seedline.cli.commands.preflight.preflight",
    "validate": "seedline.cli.commands.validate.validate",
}


def _configure_logging(ctx: click.Context, param: click.Parameter, value: str | None) -> None:
    if value is None:
        return
    from seedline.observability import configure_logging

    json_format = bool(ctx.params.get("log_json"))
    configure_logging(log_level=value, json_format=json_format)


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="seedline")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    is_eager=True,
    help="Emit logs as JSON (with --log-level).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    expose_value=False,
    callback=_configure_logging,
    help="Enable structured logging at this level.",
)
def cli(log_json: bool) -> None:
    """Seedline - seed data generation and integration testing.

    Populate an environment's API with realistic, cross-referenced seed data
    for any set of feature phases, test the API against it, and remove it
    again without touching production records.

    **Getting Started:**

    - `seedline preflight --env development` - Check API and database reachability
    - `seedline generate --phase scheduling --volume small` - Seed one phase
    - `seedline test --phase scheduling` - Run integration tests
    - `seedline cleanup --phase scheduling` - Remove that phase's seed data
    - `seedline validate` - Audit stored seed data for broken references
    - `seedline status` - Seed vs production record counts
    """


if __name__ == "__main__":
    cli()
