"""Output formatting utilities for the igmon CLI.

This module defines output format options, message helpers, and the Rich
rendering of run logs and results.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from igmon.runners.models import LogLine, ResultPayload

__all__ = [
    "OutputFormat",
    "format_error",
    "format_success",
    "format_warning",
    "format_json",
    "format_log_line",
    "render_results",
    "LEVEL_STYLES",
]

#: Rich style per log tag; untagged lines use the default style
LEVEL_STYLES: dict[str, str] = {
    "SUCCESS": "green",
    "CRITICAL": "bold red",
    "ERROR": "red",
    "WARNING": "yellow",
    "INFO": "",
    "DEBUG": "dim",
}


class OutputFormat(str, Enum):
    """Output formats of ``igmon config show``."""

    YAML = "yaml"
    JSON = "json"


def format_error(
    message: str, details: list[str] | None = None, suggestion: str | None = None
) -> str:
    """Format an error message with optional details and suggestion.

    Args:
        message: Primary error message.
        details: Optional list of detail lines to include.
        suggestion: Optional suggestion for resolving the error.

    Returns:
        Formatted error string with details and suggestion if provided.

    Example:
        >>> print(format_error("Run failed", details=["exit code 1"]))
        Error: Run failed
          exit code 1
    """
    lines = [f"Error: {message}"]

    if details:
        for detail in details:
            lines.append(f"  {detail}")

    if suggestion:
        lines.append(f"Suggestion: {suggestion}")

    return "\n".join(lines)


def format_success(message: str) -> str:
    """Format a success message.

    Example:
        >>> format_success("Archive written")
        'Success: Archive written'
    """
    return f"Success: {message}"


def format_warning(message: str) -> str:
    """Format a warning message.

    Example:
        >>> format_warning("No archive produced")
        'Warning: No archive produced'
    """
    return f"Warning: {message}"


def format_json(data: Any) -> str:
    """Format data as indented JSON.

    Raises:
        TypeError: If data is not JSON-serializable.
    """
    return json.dumps(data, indent=2)


def format_log_line(index: int, line: str) -> Text:
    """Render one run log line, numbered and colored by its level tag.

    Args:
        index: 1-based line number shown in the gutter.
        line: Log line text.

    Returns:
        Rich Text ready for ``console.print``.
    """
    level = LogLine(line).level
    style = LEVEL_STYLES.get(level, "") if level else ""
    text = Text(f"{index:>4} ", style="dim")
    text.append(line, style=style)
    return text


def render_results(results: ResultPayload, console: Console) -> None:
    """Print the follower-change tables and the downloads summary."""
    target = results.target or "unknown target"
    console.print(Text(f"Results for {target}", style="bold"))

    for title, diff in results.diff_groups():
        table = Table(title=f"{title} ({len(diff.users)})", title_justify="left")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Username")
        if diff.users:
            for i, user in enumerate(diff.users, start=1):
                table.add_row(str(i), Text(user))
        else:
            table.add_row("", Text("No users in this category.", style="dim"))
        console.print(table)

    console.print(Text(f"Downloaded media: {results.downloaded_media_count}"))
    if results.generated_files:
        console.print(Text("Generated files:"))
        for name in results.generated_files:
            console.print(Text(f"  {name}"))
