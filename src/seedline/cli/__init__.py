"""Command-line interface for seedline.

The console script ``seedline`` points at seedline.cli.main:cli.
"""

from __future__ import annotations
