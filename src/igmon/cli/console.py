"""Shared Rich Console for igmon CLI output.

Rich detects the terminal: styled output in terminals, plain text when piped.
"""

from __future__ import annotations

from rich.console import Console

__all__ = ["console"]

console = Console()
