"""Incremental line emitter.

The emitter turns the growing output sink into log lines. It keeps a cursor
on the part of the sink already surfaced and, on each poll, splits only the
newly appended region. A line still being written (no trailing newline yet)
is held back until it is terminated or the run ends.
"""

from __future__ import annotations

from igmon.runners.models import LogLine
from igmon.runners.sentinel import is_sentinel
from igmon.runners.sink import OutputSink

__all__ = ["LineEmitter"]


class LineEmitter:
    """Surface new, non-blank lines of an output sink exactly once.

    The cursor only moves forward. Once the results line is seen, nothing
    written after it is surfaced.

    Example:
        ```python
        emitter = LineEmitter(handle.sink)
        for line in emitter.poll():
            print(line.content)
        ```
    """

    def __init__(self, sink: OutputSink) -> None:
        self._sink = sink
        self._cursor = 0
        self._sentinel_seen = False

    @property
    def cursor(self) -> int:
        """Offset of the first character not yet surfaced."""
        return self._cursor

    @property
    def sentinel_seen(self) -> bool:
        return self._sentinel_seen

    def poll(self, *, final: bool = False) -> list[LogLine]:
        """Return the lines appended since the previous poll.

        Args:
            final: Also surface a trailing line without newline. Used for the
                last poll of a run.

        Returns:
            New log lines in output order; empty if nothing new.
        """
        length = len(self._sink)
        if length <= self._cursor:
            return []

        if self._sentinel_seen:
            self._cursor = length
            return []

        region = self._sink.slice(self._cursor, length)
        if final:
            boundary = length
        else:
            last_newline = region.rfind("\n")
            if last_newline < 0:
                return []
            region = region[: last_newline + 1]
            boundary = self._cursor + last_newline + 1

        lines: list[LogLine] = []
        for fragment in region.split("\n"):
            content = fragment.strip()
            if not content:
                continue
            if is_sentinel(content):
                # The observer owns the results line
                self._sentinel_seen = True
                boundary = length
                break
            lines.append(LogLine(content))

        self._cursor = boundary
        return lines
