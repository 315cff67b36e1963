"""Readiness gate for the external runtime.

The external runtime reports readiness through a flag plus a one-time event.
The gate checks the flag first, so a signal fired before anyone waited is
never missed, then waits for the event with a timeout. Waiting can be torn
down by cancelling the waiting task; the listener is always deregistered.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from igmon.constants import DEFAULT_READINESS_TIMEOUT
from igmon.exceptions import ReadinessTimeoutError, RuntimeUnavailableError
from igmon.logging import get_logger

__all__ = ["ReadinessSignal", "ReadinessGate", "ReadinessListener"]

logger = get_logger(__name__)

#: Called once with None when ready, or with a failure reason
ReadinessListener = Callable[[str | None], None]


class ReadinessSignal:
    """Readiness state owned by the external runtime.

    ``set_ready()`` and ``set_failed()`` settle the signal once; listeners
    fire a single time and are then dropped.
    """

    def __init__(self) -> None:
        self._ready = False
        self._failure: str | None = None
        self._listeners: list[ReadinessListener] = []

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def failure(self) -> str | None:
        """Failure reason, if the runtime reported it cannot start."""
        return self._failure

    @property
    def settled(self) -> bool:
        return self._ready or self._failure is not None

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: ReadinessListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ReadinessListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_ready(self) -> None:
        """Mark the runtime ready and fire the one-time event."""
        if self.settled:
            return
        self._ready = True
        self._fire(None)

    def set_failed(self, reason: str) -> None:
        """Mark the runtime unusable and fire the one-time event."""
        if self.settled:
            return
        self._failure = reason
        self._fire(reason)

    def _fire(self, failure: str | None) -> None:
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(failure)


class ReadinessGate:
    """Wait for a ReadinessSignal with a timeout.

    Example:
        ```python
        gate = ReadinessGate(signal, timeout=180.0)
        await gate.wait()  # raises ReadinessTimeoutError on timeout
        ```
    """

    def __init__(
        self,
        signal: ReadinessSignal,
        timeout: float = DEFAULT_READINESS_TIMEOUT,
    ) -> None:
        self._signal = signal
        self._timeout = timeout

    @property
    def signal(self) -> ReadinessSignal:
        return self._signal

    @property
    def timeout(self) -> float:
        return self._timeout

    async def wait(self) -> None:
        """Return once the runtime is ready.

        Raises:
            ReadinessTimeoutError: If readiness is not signaled in time.
            RuntimeUnavailableError: If the runtime reported a failure.
        """
        if self._signal.is_ready:
            return
        if self._signal.failure is not None:
            raise _unavailable(self._signal.failure)

        loop = asyncio.get_running_loop()
        ready: asyncio.Future[None] = loop.create_future()

        def on_ready(failure: str | None) -> None:
            if ready.done():
                return
            if failure is None:
                ready.set_result(None)
            else:
                ready.set_exception(_unavailable(failure))

        self._signal.add_listener(on_ready)
        try:
            await asyncio.wait_for(ready, timeout=self._timeout)
        except TimeoutError as e:
            logger.warning("runtime_readiness_timeout", timeout=self._timeout)
            raise ReadinessTimeoutError(
                f"External runtime failed to initialize within {self._timeout:g} "
                "seconds. This can happen on a slow network connection. "
                "Please try again.",
                timeout_seconds=self._timeout,
            ) from e
        finally:
            self._signal.remove_listener(on_ready)


def _unavailable(reason: str) -> RuntimeUnavailableError:
    return RuntimeUnavailableError(
        f"External runtime is unavailable: {reason}", reason=reason
    )
