"""CLI entry point for igmon.

This module defines the Click-based command-line interface for igmon.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from dotenv import load_dotenv

# Must run before any code reads IGMON_* variables
load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

from igmon import __version__  # noqa: E402
from igmon.cli.commands import config, run  # noqa: E402
from igmon.cli.context import CLIContext  # noqa: E402
from igmon.config import load_config  # noqa: E402
from igmon.exceptions import ConfigError  # noqa: E402
from igmon.logging import configure_logging  # noqa: E402

_VERBOSITY_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="igmon")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=False, path_type=str),
    default=None,
    help="Path to config file (overrides project/user config).",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for INFO, -vv for DEBUG).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress non-essential output (ERROR level only).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: str | None,
    verbose: int,
    quiet: bool,
) -> None:
    """igmon - run the Instagram monitor and collect its results."""
    ctx.ensure_object(dict)

    # Load configuration first (before logging setup)
    config_path = Path(config_file) if config_file else None
    try:
        loaded = load_config(config_path)
    except ConfigError as e:
        # Can't use logging yet, just output error
        error_parts = [f"Error: {e.message}"]
        if e.field:
            error_parts.append(f"  Field: {e.field}")
        if e.value is not None:
            error_parts.append(f"  Value: {e.value}")
        click.echo("\n".join(error_parts), err=True)
        ctx.exit(1)

    ctx.obj["cli_ctx"] = CLIContext(
        config=loaded,
        config_path=config_path,
        verbosity=verbose,
        quiet=quiet,
    )

    # Priority: quiet > verbose > config
    if quiet:
        level = logging.ERROR
    elif verbose > 0:
        level = logging.INFO if verbose == 1 else logging.DEBUG
    else:
        level = _VERBOSITY_LEVELS.get(loaded.verbosity, logging.WARNING)

    configure_logging(level=level)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(run)
cli.add_command(config)

if __name__ == "__main__":
    cli()
