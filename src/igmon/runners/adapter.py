"""Subprocess adapter running the monitor job as a local process.

The job configuration is serialized to JSON and handed over through an
environment variable. stdout and stderr are merged into one stream and
forwarded to the run handle chunk by chunk, as they arrive.
"""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import json
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from igmon.constants import CONFIG_ENV_VAR, READ_CHUNK_SIZE, TERMINATION_GRACE_PERIOD
from igmon.exceptions import ExternalProcessError, WorkingDirectoryError
from igmon.logging import get_logger
from igmon.runners.sink import RunHandle

__all__ = ["SubprocessRunAdapter"]

logger = get_logger(__name__)


class SubprocessRunAdapter:
    """Run the monitor job as a subprocess and feed its output to a handle.

    Attributes:
        command: Command and arguments (no shell expansion).
        cwd: Working directory for the process.

    Example:
        ```python
        adapter = SubprocessRunAdapter(["python", "-m", "instagram_monitor"])
        await adapter.start(handle, config.monitor.to_payload())
        ...
        await adapter.close()
        ```
    """

    def __init__(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        config_env_var: str = CONFIG_ENV_VAR,
        read_size: int = READ_CHUNK_SIZE,
    ) -> None:
        """Initialize the SubprocessRunAdapter.

        Args:
            command: Command launching the monitor.
            cwd: Working directory. If None, uses the current directory.
            env: Additional environment variables merged with os.environ.
            config_env_var: Variable receiving the JSON job configuration.
            read_size: Maximum bytes read from the process per chunk.
        """
        if not command:
            raise ValueError("Command cannot be empty")
        self.command = tuple(command)
        self.cwd = cwd
        self._extra_env = env or {}
        self._config_env_var = config_env_var
        self._read_size = read_size
        self._process: asyncio.subprocess.Process | None = None
        self._reader: asyncio.Task[None] | None = None

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    def _build_env(self, config: Mapping[str, Any]) -> dict[str, str]:
        env = os.environ.copy()
        env.update(self._extra_env)
        env[self._config_env_var] = json.dumps(dict(config))
        # Stream output as it is printed
        env.setdefault("PYTHONUNBUFFERED", "1")
        return env

    async def start(self, handle: RunHandle, config: Mapping[str, Any]) -> None:
        """Launch the monitor and start forwarding its output.

        Raises:
            WorkingDirectoryError: If the working directory does not exist.
            ExternalProcessError: If the command cannot be executed.
            RuntimeError: If this adapter already started a process.
        """
        if self._process is not None:
            raise RuntimeError("Adapter already started a run")
        if self.cwd is not None and not self.cwd.is_dir():
            raise WorkingDirectoryError(
                f"Working directory does not exist: {self.cwd}",
                path=self.cwd,
            )

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self.cwd,
                env=self._build_env(config),
            )
        except FileNotFoundError as e:
            raise ExternalProcessError(
                f"Command not found: {self.command[0]}", exit_code=127
            ) from e
        except PermissionError as e:
            raise ExternalProcessError(
                f"Permission denied: {self.command[0]}", exit_code=126
            ) from e

        logger.info("monitor_process_started", pid=self._process.pid)
        self._reader = asyncio.create_task(self._forward_output(handle))

    async def _forward_output(self, handle: RunHandle) -> None:
        """Copy process output into ``handle`` and report completion."""
        assert self._process is not None
        process = self._process
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            if process.stdout is not None:
                while True:
                    chunk = await process.stdout.read(self._read_size)
                    if not chunk:
                        break
                    text = decoder.decode(chunk)
                    if text:
                        handle.append_observed(text)
            tail = decoder.decode(b"", final=True)
            if tail:
                handle.append_observed(tail)
            returncode = await process.wait()
        except Exception as e:
            logger.exception("monitor_output_read_failed")
            handle.signal_error(f"output could not be read: {e}")
            return

        logger.info("monitor_process_exited", returncode=returncode)
        if returncode == 0:
            handle.signal_done()
        else:
            handle.signal_error(f"exit code {returncode}")

    async def close(self) -> None:
        """Release the process.

        A process still running gets a grace period to exit on its own, then
        SIGTERM, then SIGKILL after another grace period. The reader is given
        the same grace period to drain the remaining output.
        """
        process = self._process
        if process is not None and process.returncode is None:
            try:
                await asyncio.wait_for(process.wait(), timeout=TERMINATION_GRACE_PERIOD)
            except TimeoutError:
                await self._terminate(process)

        reader = self._reader
        if reader is not None and not reader.done():
            await asyncio.wait({reader}, timeout=TERMINATION_GRACE_PERIOD)
            if not reader.done():
                reader.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await reader

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        logger.info("monitor_process_terminating", pid=process.pid)
        with contextlib.suppress(ProcessLookupError):
            process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=TERMINATION_GRACE_PERIOD)
        except TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
