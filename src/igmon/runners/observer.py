"""Observer resolving a run from its output.

The SinkObserver watches a RunHandle and settles a future with the run's
terminal value as soon as it is known:

- the results line appears in the output (success or decode error);
- the external process reports an error;
- the external process finishes without ever writing a results line.

It resolves at most once and detaches from the handle when it does.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from igmon.constants import DEFAULT_TAIL_CHARS
from igmon.exceptions import ResultDecodeError
from igmon.logging import get_logger
from igmon.runners.models import FailureKind, RunFailure, RunOutcome, RunSuccess
from igmon.runners.sentinel import decode_sentinel, is_sentinel
from igmon.runners.sink import RunHandle

__all__ = ["SinkObserver"]

logger = get_logger(__name__)


class SinkObserver:
    """Settle a run's outcome from its output and completion signals.

    Example:
        ```python
        observer = SinkObserver(handle)
        observer.start()
        outcome = await observer.resolution
        ```
    """

    def __init__(self, handle: RunHandle, tail_chars: int = DEFAULT_TAIL_CHARS) -> None:
        """Initialize the SinkObserver.

        Args:
            handle: Run to observe.
            tail_chars: Output characters included when the process ends
                without results.
        """
        self._handle = handle
        self._tail_chars = tail_chars
        self._partial = ""
        self._resolution: asyncio.Future[RunOutcome] | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def resolution(self) -> asyncio.Future[RunOutcome]:
        """Future settled with the terminal outcome. Requires start()."""
        if self._resolution is None:
            raise RuntimeError("Observer not started. Call start() first.")
        return self._resolution

    @property
    def resolved(self) -> bool:
        return self._resolution is not None and self._resolution.done()

    def start(self) -> None:
        """Begin observing. Must be called from a running event loop."""
        if self._resolution is not None:
            return
        self._resolution = asyncio.get_running_loop().create_future()
        self._unsubscribe = self._handle.sink.subscribe(self._on_append)
        self._handle.add_terminal_listener(self._on_terminal)

    def stop(self) -> None:
        """Stop observing. Safe to call repeatedly."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._handle.remove_terminal_listener(self._on_terminal)

    def _on_append(self, chunk: str) -> None:
        if self.resolved:
            return
        *complete, self._partial = (self._partial + chunk).split("\n")
        for line in complete:
            if self._scan(line):
                return

    def _scan(self, line: str) -> bool:
        """Resolve from ``line`` if it is the results line."""
        if not is_sentinel(line):
            return False
        try:
            payload = decode_sentinel(line)
        except ResultDecodeError as e:
            logger.warning("results_decode_failed", error=e.message)
            self._resolve(
                RunFailure(
                    kind=FailureKind.DECODE_ERROR,
                    message=e.message,
                    detail=e.raw_line,
                )
            )
        else:
            self._resolve(RunSuccess(payload=payload))
        return True

    def _on_terminal(self, succeeded: bool, detail: str | None) -> None:
        if self.resolved:
            return

        # The results line may be the last thing written, without newline
        trailing, self._partial = self._partial, ""
        if trailing and self._scan(trailing):
            return

        if not succeeded:
            message = "A Python error occurred during execution."
            if detail:
                message = f"{message} ({detail})"
            self._resolve(
                RunFailure(
                    kind=FailureKind.PROCESS_ERROR,
                    message=message,
                    detail=self._handle.sink.tail(self._tail_chars),
                )
            )
            return

        log_tail = self._handle.sink.tail(self._tail_chars)
        self._resolve(
            RunFailure(
                kind=FailureKind.UNEXPECTED_TERMINATION,
                message="Script finished unexpectedly. Check logs for errors.",
                detail=log_tail,
            )
        )

    def _resolve(self, outcome: RunOutcome) -> None:
        future = self.resolution
        if future.done():
            return
        future.set_result(outcome)
        logger.debug(
            "run_resolved",
            success=outcome.success,
            kind=getattr(outcome, "kind", None),
        )
        self.stop()
