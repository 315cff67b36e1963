from __future__ import annotations

import contextlib
from collections.abc import Generator

import click

from igmon.cli.context import ExitCode
from igmon.cli.output import format_error
from igmon.exceptions import IgmonError
from igmon.logging import get_logger

__all__ = ["cli_error_handler"]


@contextlib.contextmanager
def cli_error_handler() -> Generator[None, None, None]:
    """Context manager for common CLI error handling.

    - IgmonError: formatted error, exit with code 1
    - Anything else: logged with traceback, exit with code 1

    Example:
        >>> with cli_error_handler():
        >>>     await session.run()
    """
    logger = get_logger(__name__)

    try:
        yield
    except IgmonError as e:
        click.echo(format_error(e.message), err=True)
        raise SystemExit(ExitCode.FAILURE) from e
    except Exception as e:
        logger.exception("unexpected_command_error")
        click.echo(f"Error: {e!s}", err=True)
        raise SystemExit(ExitCode.FAILURE) from e
