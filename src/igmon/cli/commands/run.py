from __future__ import annotations

from pathlib import Path

import click

from igmon.cli.common import cli_error_handler
from igmon.cli.console import console
from igmon.cli.context import CLIContext, ExitCode, async_command
from igmon.cli.output import (
    format_error,
    format_log_line,
    format_success,
    format_warning,
    render_results,
)
from igmon.exceptions import IgmonError
from igmon.logging import get_logger
from igmon.runners.models import RunFailure
from igmon.session import MonitorSession, RuntimeState


@click.command()
@click.option(
    "-t",
    "--target",
    "targets",
    multiple=True,
    help="Account to monitor (repeatable, overrides configured targets).",
)
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory the results archive is written to.",
)
@click.option(
    "--no-archive",
    is_flag=True,
    default=False,
    help="Do not write the results archive.",
)
@click.pass_context
@async_command
async def run(
    ctx: click.Context,
    targets: tuple[str, ...],
    output_dir: Path,
    no_archive: bool,
) -> None:
    """Run the Instagram monitor once and show its results.

    Loads the monitor runtime, streams the run's log, then prints the
    follower changes and saves the output archive.

    Examples:
        igmon run
        igmon run --target someaccount --output-dir results
    """
    logger = get_logger(__name__)
    cli_ctx: CLIContext = ctx.obj["cli_ctx"]
    config = cli_ctx.config
    if targets:
        monitor = config.monitor.model_copy(update={"targets": list(targets)})
        config = config.model_copy(update={"monitor": monitor})

    def show(line: str) -> None:
        console.print(format_log_line(len(session.logs), line))

    session = MonitorSession(config, on_log=show)

    if await session.initialize() is not RuntimeState.READY:
        error_msg = format_error(
            "Python runtime could not be loaded",
            suggestion="Check that instagram_monitor is installed",
        )
        click.echo(error_msg, err=True)
        raise SystemExit(ExitCode.FAILURE)

    with cli_error_handler():
        outcome = await session.run()

    if isinstance(outcome, RunFailure):
        details = [f"Kind: {outcome.kind.value}"]
        if outcome.detail:
            details.extend(outcome.detail.splitlines())
        click.echo(format_error(outcome.message, details), err=True)
        raise SystemExit(ExitCode.FAILURE)

    console.print()
    render_results(outcome.payload, console)

    if no_archive:
        return
    try:
        path = session.write_archive(output_dir)
    except (IgmonError, OSError) as e:
        logger.error("archive_write_failed", error=str(e))
        click.echo(format_error(f"Failed to save results archive: {e}"), err=True)
        raise SystemExit(ExitCode.FAILURE) from e

    if path is None:
        click.echo(format_warning("The run produced no archive."))
    else:
        click.echo(format_success(f"Results saved to {path}"))
