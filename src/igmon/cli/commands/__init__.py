"""Click commands for the igmon CLI."""

from __future__ import annotations

from igmon.cli.commands.config import config
from igmon.cli.commands.run import run

__all__ = ["config", "run"]
