"""Structured logging configuration for igmon.

Diagnostic logging goes to stderr through structlog, so it never mixes with
the monitor's own log lines printed on stdout:
- JSON output when IGMON_LOG_FORMAT=json
- Pretty console output otherwise
- Run-scoped context (run_id, target) propagated through contextvars

Usage:
    from igmon.logging import get_logger, configure_logging

    configure_logging(level="info")

    log = get_logger(__name__).bind(run_id="a1b2c3")
    log.info("run_state_changed", state="streaming")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog
from structlog.types import Processor

__all__ = [
    "get_logger",
    "configure_logging",
    "bind_context",
    "clear_context",
]

# Environment variable for log format
LOG_FORMAT_ENV_VAR = "IGMON_LOG_FORMAT"

# Environment variable for log level
LOG_LEVEL_ENV_VAR = "IGMON_LOG_LEVEL"

DEFAULT_LOG_LEVEL = "WARNING"


def _resolve_level(level: int | str | None) -> int:
    """Turn a level number, a level name, or None into a logging constant.

    None falls back to IGMON_LOG_LEVEL, then to DEFAULT_LOG_LEVEL.
    Unknown names resolve to WARNING.
    """
    if isinstance(level, int):
        return level
    name = level if level is not None else os.environ.get(LOG_LEVEL_ENV_VAR, "")
    name = (name or DEFAULT_LOG_LEVEL).upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.WARNING


def _is_json_output() -> bool:
    return os.environ.get(LOG_FORMAT_ENV_VAR, "").lower() == "json"


def _shared_processors() -> list[Processor]:
    """Processors applied to both structlog and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(use_json: bool) -> Processor:
    if use_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(
    *,
    force_json: bool = False,
    level: int | str | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Safe to call more than once; each call replaces the previous handler.

    Args:
        force_json: Force JSON output regardless of IGMON_LOG_FORMAT.
        level: Logging level as a number or a name such as "debug". If None,
            IGMON_LOG_LEVEL is used.
    """
    use_json = force_json or _is_json_output()
    log_level = _resolve_level(level)

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    exc_processor: Processor = (
        structlog.processors.dict_tracebacks
        if use_json
        else structlog.processors.format_exc_info
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            exc_processor,
            _renderer(use_json),
        ],
        foreign_pre_chain=_shared_processors(),
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name, usually ``__name__``.

    Returns:
        A bound structlog logger supporting ``.bind()``.
    """
    log: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return log


def bind_context(**context: Any) -> None:
    """Bind context variables included in every subsequent log message.

    Uses structlog's contextvars, so the context follows async tasks.

    Example:
        bind_context(run_id="a1b2c3", target="instagram")
    """
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    """Clear all bound context variables, typically when a run ends."""
    structlog.contextvars.clear_contextvars()
