from __future__ import annotations

from pathlib import Path

from igmon.exceptions.base import IgmonError


class RunnerError(IgmonError):
    """Base exception for monitor run failures.

    Attributes:
        message: Human-readable error message.
    """

    pass


class WorkingDirectoryError(RunnerError):
    """Working directory does not exist or is not accessible.

    Attributes:
        message: Human-readable error message.
        path: The path that was not found.
    """

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize the WorkingDirectoryError.

        Args:
            message: Human-readable error message.
            path: The path that was not found.
        """
        self.path = path
        super().__init__(message)


class ExternalProcessError(RunnerError):
    """The external monitor process could not be launched or failed.

    Attributes:
        message: Human-readable error message.
        exit_code: Process exit code (if available).
        output_tail: Last part of the captured output (if available).
    """

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        output_tail: str | None = None,
    ) -> None:
        """Initialize the ExternalProcessError.

        Args:
            message: Human-readable error message.
            exit_code: Process exit code.
            output_tail: Last part of the captured output.
        """
        self.exit_code = exit_code
        self.output_tail = output_tail
        super().__init__(message)


class ReadinessTimeoutError(RunnerError):
    """The external runtime did not become ready within its bound.

    Attributes:
        message: Human-readable error message.
        timeout_seconds: The timeout value that was exceeded.
    """

    def __init__(
        self,
        message: str = "External runtime did not become ready",
        timeout_seconds: float | None = None,
    ) -> None:
        """Initialize the ReadinessTimeoutError.

        Args:
            message: Human-readable error message.
            timeout_seconds: The timeout value that was exceeded.
        """
        self.timeout_seconds = timeout_seconds
        super().__init__(message)


class RuntimeUnavailableError(RunnerError):
    """The external runtime reported that it cannot be used.

    Attributes:
        message: Human-readable error message.
        reason: Diagnostic reason reported by the bootstrap probe.
    """

    def __init__(self, message: str, reason: str | None = None) -> None:
        """Initialize the RuntimeUnavailableError.

        Args:
            message: Human-readable error message.
            reason: Diagnostic reason reported by the bootstrap probe.
        """
        self.reason = reason
        super().__init__(message)


class ResultDecodeError(RunnerError):
    """A results sentinel line was found but its payload could not be decoded.

    Attributes:
        message: Human-readable error message.
        raw_line: The raw sentinel line, kept for diagnostics.
    """

    def __init__(self, message: str, raw_line: str | None = None) -> None:
        """Initialize the ResultDecodeError.

        Args:
            message: Human-readable error message.
            raw_line: The raw sentinel line.
        """
        self.raw_line = raw_line
        super().__init__(message)
