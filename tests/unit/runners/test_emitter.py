"""Tests for LineEmitter."""

from __future__ import annotations

from igmon.runners.emitter import LineEmitter
from igmon.runners.models import LogLine
from igmon.runners.sink import OutputSink

from tests.fixtures.runners import results_line


def contents(lines: list[LogLine]) -> list[str]:
    return [line.content for line in lines]


class TestLineEmitter:
    """Tests for LineEmitter.poll."""

    def test_empty_sink_yields_nothing(self) -> None:
        """Polling an empty sink returns no lines and keeps the cursor."""
        emitter = LineEmitter(OutputSink())

        assert emitter.poll() == []
        assert emitter.cursor == 0

    def test_complete_lines_emitted_once(self) -> None:
        """Each complete line is surfaced exactly once."""
        sink = OutputSink()
        emitter = LineEmitter(sink)
        sink.append("[INFO] a\n[INFO] b\n")

        assert contents(emitter.poll()) == ["[INFO] a", "[INFO] b"]
        assert emitter.poll() == []
        assert emitter.cursor == len(sink)

    def test_partial_line_held_back(self) -> None:
        """A line without newline waits until it is terminated."""
        sink = OutputSink()
        emitter = LineEmitter(sink)
        sink.append("[INFO] a\n[INFO] par")

        assert contents(emitter.poll()) == ["[INFO] a"]
        assert emitter.cursor == len("[INFO] a\n")

        sink.append("tial\n")

        assert contents(emitter.poll()) == ["[INFO] partial"]

    def test_final_poll_flushes_partial_line(self) -> None:
        """The last poll of a run surfaces an unterminated line."""
        sink = OutputSink()
        emitter = LineEmitter(sink)
        sink.append("[INFO] no newline")

        assert emitter.poll() == []
        assert contents(emitter.poll(final=True)) == ["[INFO] no newline"]
        assert emitter.cursor == len(sink)

    def test_blank_lines_skipped_and_content_stripped(self) -> None:
        """Whitespace-only lines are dropped; content is stripped."""
        sink = OutputSink()
        emitter = LineEmitter(sink)
        sink.append("\n   \n  [WARNING] spaced  \r\n\n")

        assert contents(emitter.poll()) == ["[WARNING] spaced"]

    def test_results_line_never_emitted(self) -> None:
        """The results line belongs to the observer, not the log."""
        sink = OutputSink()
        emitter = LineEmitter(sink)
        sink.append("[INFO] before\n" + results_line())

        assert contents(emitter.poll()) == ["[INFO] before"]
        assert emitter.sentinel_seen is True

    def test_nothing_emitted_after_results_line(self) -> None:
        """Lines written after the results line are dropped, even later."""
        sink = OutputSink()
        emitter = LineEmitter(sink)
        sink.append(results_line() + "[INFO] trailing\n")

        assert emitter.poll() == []

        sink.append("[INFO] even later\n")

        assert emitter.poll(final=True) == []
        assert emitter.cursor == len(sink)

    def test_cursor_never_moves_backwards(self) -> None:
        """Cursor values across polls are monotonic."""
        sink = OutputSink()
        emitter = LineEmitter(sink)
        cursors = []
        for chunk in ["[INFO] 1", "\n[INFO] 2\n", "", "[INF", "O] 3\n"]:
            sink.append(chunk)
            emitter.poll()
            cursors.append(emitter.cursor)

        assert cursors == sorted(cursors)
        assert cursors[-1] == len(sink)
