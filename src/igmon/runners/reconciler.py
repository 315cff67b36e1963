"""Run reconciler: one ordered stream of log lines and a single outcome.

A run has two independent sources of truth racing each other:

- the LineEmitter, polled on a fixed interval, surfacing new output lines;
- the SinkObserver, settling the run's outcome the moment it is known.

RunReconciler merges them into one async stream. Lines are yielded in output
order; once the outcome is known, a final poll flushes the lines written
before it, then the outcome is yielded last. The stream always ends with
exactly one RunSuccess or RunFailure and never raises run errors to the
consumer.

State machine:

    INITIALIZING --ready--> STREAMING --resolved--> FINALIZING --> DONE
         |                                               |
         +--timeout / unavailable--> FAILED <--failure---+
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator, Mapping
from typing import Any

from igmon.constants import DEFAULT_POLL_INTERVAL, DEFAULT_TAIL_CHARS
from igmon.exceptions import (
    ReadinessTimeoutError,
    RunnerError,
    RuntimeUnavailableError,
)
from igmon.logging import get_logger
from igmon.runners.emitter import LineEmitter
from igmon.runners.models import (
    FailureKind,
    LogLine,
    RunFailure,
    RunOutcome,
    RunState,
    StreamItem,
)
from igmon.runners.observer import SinkObserver
from igmon.runners.protocols import ExternalRunAdapter
from igmon.runners.readiness import ReadinessGate
from igmon.runners.sink import RunHandle

__all__ = ["RunReconciler", "CRITICAL_PREFIX"]

logger = get_logger(__name__)

#: Prefix of the synthetic line announcing a failed run
CRITICAL_PREFIX = "[CRITICAL] Frontend runner error:"


class RunReconciler:
    """Drive one monitor run and reconcile its output into a stream.

    A reconciler streams a single run; create a new one for the next run.

    Example:
        ```python
        reconciler = RunReconciler(adapter, readiness=gate)
        async for item in reconciler.stream(config.monitor.to_payload()):
            if isinstance(item, LogLine):
                print(item.content)
            else:
                outcome = item
        ```
    """

    def __init__(
        self,
        adapter: ExternalRunAdapter,
        *,
        readiness: ReadinessGate | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        tail_chars: int = DEFAULT_TAIL_CHARS,
        run_id: str | None = None,
    ) -> None:
        """Initialize the RunReconciler.

        Args:
            adapter: Process-boundary adapter launching the run.
            readiness: Gate awaited before the run starts. None means the
                runtime is always ready.
            poll_interval: Seconds between two polls of the output.
            tail_chars: Output characters kept when the run ends without
                results.
            run_id: Identifier bound to log messages (generated if None).
        """
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._adapter = adapter
        self._readiness = readiness
        self._poll_interval = poll_interval
        self._tail_chars = tail_chars
        self._run_id = run_id or uuid.uuid4().hex[:8]
        self._state = RunState.INITIALIZING
        self._handle: RunHandle | None = None
        self._started = False
        self._outcome: RunOutcome | None = None
        self._adapter_closed = False
        self._log = logger.bind(run_id=self._run_id)

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def handle(self) -> RunHandle | None:
        """Handle of the current run, once it started."""
        return self._handle

    @property
    def outcome(self) -> RunOutcome | None:
        """Terminal value, once the stream delivered it."""
        return self._outcome

    async def stream(self, config: Mapping[str, Any]) -> AsyncIterator[StreamItem]:
        """Run the monitor and yield its log lines, then its outcome.

        Args:
            config: Job configuration forwarded verbatim to the adapter.

        Yields:
            LogLine items in output order, then exactly one RunSuccess or
            RunFailure. A RunFailure is always preceded by one
            ``[CRITICAL]`` line describing it.

        Raises:
            RunnerError: If this reconciler already streamed a run.
        """
        if self._started:
            raise RunnerError(
                "A run stream cannot be restarted; create a new RunReconciler"
            )
        self._started = True

        handle = RunHandle()
        self._handle = handle
        observer = SinkObserver(handle, tail_chars=self._tail_chars)
        emitter = LineEmitter(handle.sink)

        try:
            outcome: RunOutcome | None = None
            try:
                outcome = await self._await_readiness()
                if outcome is None:
                    observer.start()
                    self._transition(RunState.STREAMING)
                    await self._adapter.start(handle, config)

                    resolution = observer.resolution
                    while True:
                        # Wakes early when the outcome lands, lines keep flowing
                        await asyncio.wait({resolution}, timeout=self._poll_interval)
                        for line in emitter.poll():
                            yield line
                        if resolution.done():
                            break

                    self._transition(RunState.FINALIZING)
                    for line in emitter.poll(final=True):
                        yield line
                    outcome = resolution.result()
            except RunnerError as e:
                self._log.warning("run_launch_failed", error=e.message)
                outcome = RunFailure(kind=FailureKind.PROCESS_ERROR, message=e.message)
            except Exception as e:
                self._log.exception("run_orchestration_failed")
                outcome = RunFailure(
                    kind=FailureKind.INTERNAL_ERROR,
                    message=str(e) or type(e).__name__,
                )

            observer.stop()
            await self._close_adapter()

            assert outcome is not None
            self._outcome = outcome
            if isinstance(outcome, RunFailure):
                self._transition(RunState.FAILED)
                self._log.warning(
                    "run_failed", kind=outcome.kind.value, message=outcome.message
                )
                # A LogLine is a single line; the output tail stays in detail
                summary = " ".join(outcome.message.split())
                yield LogLine(f"{CRITICAL_PREFIX} {summary}")
            else:
                self._transition(RunState.DONE)
                self._log.info(
                    "run_succeeded",
                    media=outcome.payload.downloaded_media_count,
                )
            yield outcome
        finally:
            observer.stop()
            await self._close_adapter()

    async def _await_readiness(self) -> RunFailure | None:
        """Wait for the runtime; return a failure instead of raising."""
        if self._readiness is None:
            return None
        try:
            await self._readiness.wait()
        except ReadinessTimeoutError as e:
            return RunFailure(kind=FailureKind.TIMEOUT, message=e.message)
        except RuntimeUnavailableError as e:
            return RunFailure(
                kind=FailureKind.RUNTIME_UNAVAILABLE,
                message=e.message,
                detail=e.reason,
            )
        return None

    async def _close_adapter(self) -> None:
        if self._adapter_closed:
            return
        self._adapter_closed = True
        try:
            await self._adapter.close()
        except Exception:
            self._log.exception("adapter_close_failed")

    def _transition(self, state: RunState) -> None:
        if self._state.is_terminal:
            return
        self._log.debug(
            "run_state_changed", previous=self._state.value, state=state.value
        )
        self._state = state
