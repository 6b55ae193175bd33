"""CLI command modules.

This package contains the implementation of all seedline subcommands.
Commands are loaded lazily by seedline.cli.main.LazyGroup.
"""

from __future__ import annotations

__all__: list[str] = []
