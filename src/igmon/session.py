"""Monitor session: the stateful front end around runs.

A MonitorSession owns everything a front end shows: the runtime loading
state, the log lines of the current run, the last results, and whether a run
is in progress. It loads the runtime once, then starts runs on demand and
sends notifications when they finish.

Usage:
    session = MonitorSession(config, on_log=print)
    if await session.initialize() is RuntimeState.READY:
        outcome = await session.run()
        session.write_archive(Path("results"))
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import date
from enum import Enum
from pathlib import Path

from igmon.config import IgmonConfig, MonitorConfig
from igmon.constants import MONITOR_MODULE
from igmon.exceptions import (
    ReadinessTimeoutError,
    RunnerError,
    RuntimeUnavailableError,
)
from igmon.logging import bind_context, clear_context, get_logger
from igmon.notifications import Notifier
from igmon.runners.adapter import SubprocessRunAdapter
from igmon.runners.bootstrap import RuntimeBootstrap
from igmon.runners.command import CommandRunner
from igmon.runners.models import LogLine, ResultPayload, RunFailure, RunOutcome
from igmon.runners.protocols import ExternalRunAdapter
from igmon.runners.readiness import ReadinessGate, ReadinessSignal
from igmon.runners.reconciler import RunReconciler

__all__ = ["MonitorSession", "RuntimeState", "AdapterFactory"]

logger = get_logger(__name__)

#: Builds a fresh adapter for each run
AdapterFactory = Callable[[], ExternalRunAdapter]

HEARTBEAT_MESSAGE = "[INFO] Still working on setup... please wait."


class RuntimeState(str, Enum):
    """Loading state of the external runtime."""

    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class MonitorSession:
    """Front-end state for loading the runtime and running the monitor.

    Attributes:
        config: Current configuration.
        logs: Log lines shown for the current run (or the loading phase).
        results: Results of the last finished run.
        outcome: Terminal value of the last finished run.
        runtime_state: Loading state of the external runtime.
        is_running: True while a run is in progress.
        has_error: True if the current run logged an ``[ERROR]`` or
            ``[CRITICAL]`` line.
    """

    def __init__(
        self,
        config: IgmonConfig,
        *,
        adapter_factory: AdapterFactory | None = None,
        bootstrap: RuntimeBootstrap | None = None,
        notifier: Notifier | None = None,
        on_log: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the MonitorSession.

        Args:
            config: igmon configuration.
            adapter_factory: Builds the adapter for each run. Defaults to a
                SubprocessRunAdapter running ``config.runner.command``.
            bootstrap: Probe making the runtime ready. Defaults to running
                ``config.runner.probe_command``.
            notifier: Notification sender. Defaults to ntfy from
                ``config.notifications``.
            on_log: Called with every log line as soon as it is recorded.
        """
        self.config = config
        self.logs: list[str] = []
        self.results: ResultPayload | None = None
        self.outcome: RunOutcome | None = None
        self.runtime_state = RuntimeState.LOADING
        self.is_running = False
        self.has_error = False

        runner_config = config.runner
        self._adapter_factory = adapter_factory or (
            lambda: SubprocessRunAdapter(
                runner_config.command,
                cwd=runner_config.cwd,
                config_env_var=runner_config.config_env_var,
            )
        )
        self._bootstrap = bootstrap or RuntimeBootstrap(
            ReadinessSignal(),
            runner_config.probe_command,
            runner=CommandRunner(cwd=runner_config.cwd, timeout=None),
            max_retries=runner_config.probe_retries,
        )
        self._gate = ReadinessGate(
            self._bootstrap.signal, timeout=runner_config.readiness_timeout
        )
        self._notifier = notifier or Notifier(config.notifications)
        self._on_log = on_log

    @property
    def readiness(self) -> ReadinessGate:
        return self._gate

    def _record(self, line: str) -> None:
        self.logs.append(line)
        if self._on_log is not None:
            self._on_log(line)

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.config.runner.heartbeat_interval)
            self._record(HEARTBEAT_MESSAGE)

    @staticmethod
    async def _stop_tasks(*tasks: asyncio.Task[object]) -> None:
        """Cancel helper tasks; their failures are logged, not raised."""
        for task in tasks:
            if not task.done():
                task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(
                    "runtime_helper_task_failed",
                    error=str(result),
                    error_type=type(result).__name__,
                )

    async def initialize(self) -> RuntimeState:
        """Load the external runtime, reporting progress in the logs.

        Returns:
            READY or ERROR.
        """
        self.runtime_state = RuntimeState.LOADING
        self._record(
            "[INFO] Initializing Python runtime... This may take a few minutes."
        )
        self._record(
            f'[INFO] This involves checking that "{MONITOR_MODULE}" and its '
            "packages can be loaded."
        )

        heartbeat = asyncio.create_task(self._heartbeat())
        probe = asyncio.create_task(self._bootstrap.run())
        try:
            await self._gate.wait()
        except (ReadinessTimeoutError, RuntimeUnavailableError) as e:
            logger.error("runtime_initialization_failed", error=e.message)
            self.runtime_state = RuntimeState.ERROR
            self._record(f"[CRITICAL] Failed to load Python runtime: {e.message}")
        else:
            self.runtime_state = RuntimeState.READY
            self._record("[SUCCESS] Python runtime ready.")
        finally:
            await self._stop_tasks(heartbeat, probe)

        return self.runtime_state

    async def run(self) -> RunOutcome:
        """Run the monitor once with the current configuration.

        Returns:
            The run's terminal value. ``results`` is set to its payload,
            which is a safe empty default when the run failed.

        Raises:
            RuntimeUnavailableError: If the runtime is not ready.
            RunnerError: If a run is already in progress.
        """
        if self.runtime_state is not RuntimeState.READY:
            raise RuntimeUnavailableError(
                "Python runtime is not ready", reason=self.runtime_state.value
            )
        if self.is_running:
            raise RunnerError("A monitor run is already in progress")

        self.is_running = True
        self.results = None
        self.outcome = None
        self.logs = []
        self.has_error = False

        runner_config = self.config.runner
        reconciler = RunReconciler(
            self._adapter_factory(),
            readiness=self._gate,
            poll_interval=runner_config.poll_interval,
            tail_chars=runner_config.tail_chars,
        )
        bind_context(run_id=reconciler.run_id)
        outcome: RunOutcome | None = None
        try:
            async for item in reconciler.stream(self.config.monitor.to_payload()):
                if isinstance(item, LogLine):
                    self._record(item.content)
                    if item.is_error:
                        self.has_error = True
                else:
                    outcome = item

            assert outcome is not None
            self.outcome = outcome
            self.results = outcome.payload
            await self._notify(outcome)
        finally:
            self.is_running = False
            clear_context()

        return outcome

    async def _notify(self, outcome: RunOutcome) -> None:
        monitor = self.config.monitor
        if isinstance(outcome, RunFailure):
            if monitor.error_notification:
                await self._notifier.send(
                    "Instagram Monitor Failed",
                    "A critical error stopped the script. Check logs.",
                    priority="urgent",
                    tags=["x"],
                )
        elif self.has_error:
            if monitor.error_notification:
                await self._notifier.send(
                    "Instagram Monitor Error",
                    "An error occurred during the run. Check logs for details.",
                    priority="high",
                    tags=["warning"],
                )
        elif monitor.status_notification:
            await self._notifier.send(
                "Instagram Monitor Finished",
                "Monitoring run completed successfully.",
                tags=["tada"],
            )

    def reset(self) -> None:
        """Restore the default job configuration and clear run state."""
        self.config = self.config.model_copy(update={"monitor": MonitorConfig()})
        self.results = None
        self.outcome = None
        self.logs = []
        self.has_error = False
        self.is_running = False

    def archive_filename(self, day: date | None = None) -> str:
        """Name of the results archive, e.g. ``results_instagram_2024-05-01.zip``."""
        target = (self.results.target if self.results else "") or "instagram_monitor"
        return f"results_{target}_{(day or date.today()).isoformat()}.zip"

    def write_archive(self, directory: Path, day: date | None = None) -> Path | None:
        """Write the last run's output archive into ``directory``.

        Returns:
            Path of the written archive, or None if the run produced none.

        Raises:
            ResultDecodeError: If the archive is not valid base64.
        """
        if self.results is None:
            return None
        data = self.results.archive_bytes()
        if data is None:
            return None
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.archive_filename(day)
        path.write_bytes(data)
        logger.info("results_archive_written", path=str(path), size=len(data))
        return path
