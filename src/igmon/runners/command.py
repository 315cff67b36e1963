"""Command runner for one-shot async subprocess execution.

Used for short helper commands such as the runtime readiness probe. The
long-running monitor itself goes through SubprocessRunAdapter, which streams.
"""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_exponential

from igmon.constants import TERMINATION_GRACE_PERIOD
from igmon.exceptions import WorkingDirectoryError
from igmon.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ["CommandRunner", "CommandResult"]

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of executing a single command.

    Attributes:
        returncode: Exit code from the command (0 = success).
        stdout: Standard output captured from the command.
        stderr: Standard error captured from the command.
        duration_ms: Execution time in milliseconds.
        timed_out: True if the command exceeded its timeout limit.
    """

    returncode: int
    stdout: str
    stderr: str
    duration_ms: int
    timed_out: bool = False

    @property
    def success(self) -> bool:
        """True if command completed successfully (returncode 0, no timeout)."""
        return self.returncode == 0 and not self.timed_out


class _FailedAttempt(Exception):
    """Raised inside the retry loop to request another attempt."""

    def __init__(self, result: CommandResult) -> None:
        super().__init__("Command failed, retrying...")
        self.result = result


class CommandRunner:
    """Execute commands with timeout, retries and environment control.

    Example:
        ```python
        runner = CommandRunner(timeout=60.0)
        result = await runner.run(["python", "-c", "import instagram_monitor"])
        if not result.success:
            print(result.stderr)
        ```
    """

    def __init__(
        self,
        cwd: Path | None = None,
        timeout: float | None = 120.0,
        env: dict[str, str] | None = None,
    ) -> None:
        """Initialize the CommandRunner.

        Args:
            cwd: Working directory for commands. If None, uses current directory.
            timeout: Default timeout in seconds. Use None for no timeout.
            env: Additional environment variables to merge with os.environ.
        """
        self._cwd = cwd
        self._timeout = timeout
        self._extra_env = env or {}

    @property
    def cwd(self) -> Path | None:
        return self._cwd

    @property
    def timeout(self) -> float | None:
        return self._timeout

    async def run(
        self,
        command: Sequence[str],
        *,
        timeout: float | None = None,
        max_retries: int = 0,
        retry_delay: float = 1.0,
    ) -> CommandResult:
        """Execute a command and return its result.

        Failed attempts are retried with exponential backoff; the result of
        the last attempt is returned when retries are exhausted.

        Args:
            command: Command and arguments as a sequence (no shell expansion).
            timeout: Override timeout. Use 0 or negative for no timeout.
            max_retries: Extra attempts after a failure (default 0).
            retry_delay: Initial delay between attempts in seconds.

        Returns:
            CommandResult with returncode, stdout, stderr, duration_ms, timed_out.

        Raises:
            WorkingDirectoryError: If working directory does not exist.
        """
        if self._cwd is not None and not self._cwd.is_dir():
            raise WorkingDirectoryError(
                f"Working directory does not exist: {self._cwd}", path=self._cwd
            )

        effective_timeout = timeout if timeout is not None else self._timeout
        if effective_timeout is not None and effective_timeout <= 0:
            effective_timeout = None

        env = os.environ.copy()
        env.update(self._extra_env)

        last_result: CommandResult | None = None
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max_retries + 1),
                wait=wait_exponential(multiplier=retry_delay, min=retry_delay, max=10),
                reraise=True,
            ):
                with attempt:
                    last_result = await self._execute_once(
                        command, effective_timeout, env
                    )
                    if not last_result.success:
                        logger.debug(
                            "command_attempt_failed",
                            command=command[0],
                            returncode=last_result.returncode,
                            attempt=attempt.retry_state.attempt_number,
                        )
                        raise _FailedAttempt(last_result)
        except (_FailedAttempt, RetryError):
            pass

        assert last_result is not None
        return last_result

    async def _execute_once(
        self,
        command: Sequence[str],
        timeout: float | None,
        env: dict[str, str],
    ) -> CommandResult:
        """Execute a command once without retries."""
        start_time = time.monotonic()
        timed_out = False
        stdout_str = ""
        stderr_str = ""

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd,
                env=env,
            )
            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(), timeout=timeout
                )
                returncode = process.returncode or 0
                stdout_str = stdout_bytes.decode("utf-8", errors="replace")
                stderr_str = stderr_bytes.decode("utf-8", errors="replace")
            except TimeoutError:
                # Graceful termination: SIGTERM first, SIGKILL after grace period
                timed_out = True
                process.terminate()
                try:
                    await asyncio.wait_for(
                        process.wait(), timeout=TERMINATION_GRACE_PERIOD
                    )
                except TimeoutError:
                    process.kill()
                    await process.wait()
                returncode = -1
                stderr_str = f"Command timed out after {timeout:g}s"
        except FileNotFoundError:
            returncode = 127
            stderr_str = f"Command not found: {command[0]}"
        except PermissionError:
            returncode = 126
            stderr_str = f"Permission denied: {command[0]}"
        except OSError as e:
            # e.g. ENOEXEC for a script without a shebang
            returncode = 126
            stderr_str = f"Cannot execute {command[0]}: {e.strerror or e}"

        return CommandResult(
            returncode=returncode,
            stdout=stdout_str,
            stderr=stderr_str,
            duration_ms=int((time.monotonic() - start_time) * 1000),
            timed_out=timed_out,
        )
