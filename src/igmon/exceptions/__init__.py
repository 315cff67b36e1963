"""igmon exception hierarchy.

All exceptions can be imported from this package:
    from igmon.exceptions import ConfigError, RunnerError, ResultDecodeError
"""

from __future__ import annotations

# Base exception
from igmon.exceptions.base import IgmonError

# Configuration exceptions
from igmon.exceptions.config import ConfigError

# Notification exceptions
from igmon.exceptions.notification import NotificationError

# Runner-related exceptions
from igmon.exceptions.runner import (
    ExternalProcessError,
    ReadinessTimeoutError,
    ResultDecodeError,
    RunnerError,
    RuntimeUnavailableError,
    WorkingDirectoryError,
)

__all__ = [
    # Base
    "IgmonError",
    # Config
    "ConfigError",
    # Notification
    "NotificationError",
    # Runner
    "ExternalProcessError",
    "ReadinessTimeoutError",
    "ResultDecodeError",
    "RunnerError",
    "RuntimeUnavailableError",
    "WorkingDirectoryError",
]
