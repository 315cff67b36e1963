"""CLI utilities for igmon.

This module provides CLI-specific utilities including context management
and output formatting.
"""

from __future__ import annotations

from igmon.cli.context import CLIContext, ExitCode, async_command
from igmon.cli.output import OutputFormat

__all__ = [
    "CLIContext",
    "ExitCode",
    "OutputFormat",
    "async_command",
]
