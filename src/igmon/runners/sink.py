"""Output sink and external run handle.

A RunHandle is the value igmon owns for the duration of one run. The
process-boundary adapter drives it: it appends the monitor's output with
``append_observed()`` and reports completion exactly once with
``signal_done()`` or ``signal_error()``. Readers (the observer and the line
emitter) only ever read the sink.
"""

from __future__ import annotations

from collections.abc import Callable

from igmon.logging import get_logger

__all__ = ["OutputSink", "RunHandle", "SinkListener", "TerminalListener"]

logger = get_logger(__name__)

#: Called synchronously with every appended chunk
SinkListener = Callable[[str], None]

#: Called once with (succeeded, detail) when the external run finishes
TerminalListener = Callable[[bool, str | None], None]


class OutputSink:
    """Append-only text buffer written by the external process.

    Length never decreases during a run; ``clear()`` is only used between
    runs.
    """

    def __init__(self) -> None:
        self._chunks: list[str] = []
        self._length = 0
        self._joined: str | None = ""
        self._listeners: list[SinkListener] = []

    def __len__(self) -> int:
        return self._length

    @property
    def text(self) -> str:
        """Full content written so far."""
        if self._joined is None:
            self._joined = "".join(self._chunks)
            self._chunks = [self._joined]
        return self._joined

    def slice(self, start: int, end: int | None = None) -> str:
        """Return content between two offsets."""
        return self.text[start:end]

    def tail(self, count: int) -> str:
        """Return at most the last ``count`` characters."""
        if count <= 0:
            return ""
        return self.text[-count:]

    def append(self, chunk: str) -> None:
        """Append ``chunk`` and notify subscribers."""
        if not chunk:
            return
        self._chunks.append(chunk)
        self._length += len(chunk)
        self._joined = None
        for listener in list(self._listeners):
            listener(chunk)

    def clear(self) -> None:
        """Drop all content; only valid before a new run starts."""
        self._chunks = []
        self._length = 0
        self._joined = ""

    def subscribe(self, listener: SinkListener) -> Callable[[], None]:
        """Register ``listener`` for appended chunks.

        Returns:
            A callable removing the subscription. Calling it twice is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


class RunHandle:
    """Everything igmon holds about one external run.

    Attributes:
        sink: Output written by the external process.
    """

    def __init__(self, sink: OutputSink | None = None) -> None:
        self.sink = sink if sink is not None else OutputSink()
        self._terminal_listeners: list[TerminalListener] = []
        self._finished = False
        self._succeeded: bool | None = None
        self._detail: str | None = None

    @property
    def finished(self) -> bool:
        """True once the adapter reported completion."""
        return self._finished

    @property
    def succeeded(self) -> bool | None:
        """Completion status, or None while the run is still going."""
        return self._succeeded

    def append_observed(self, text: str) -> None:
        """Record output produced by the external process."""
        if self._finished:
            logger.debug("output_after_completion_ignored", length=len(text))
            return
        self.sink.append(text)

    def signal_done(self) -> None:
        """Report that the external process completed normally."""
        self._finish(True, None)

    def signal_error(self, detail: str | None = None) -> None:
        """Report that the external process failed."""
        self._finish(False, detail)

    def add_terminal_listener(self, listener: TerminalListener) -> None:
        """Register a one-shot completion listener.

        If the run already finished, the listener is called immediately.
        """
        if self._finished:
            assert self._succeeded is not None
            listener(self._succeeded, self._detail)
            return
        self._terminal_listeners.append(listener)

    def remove_terminal_listener(self, listener: TerminalListener) -> None:
        if listener in self._terminal_listeners:
            self._terminal_listeners.remove(listener)

    def _finish(self, succeeded: bool, detail: str | None) -> None:
        if self._finished:
            return
        self._finished = True
        self._succeeded = succeeded
        self._detail = detail
        listeners, self._terminal_listeners = self._terminal_listeners, []
        for listener in listeners:
            listener(succeeded, detail)
