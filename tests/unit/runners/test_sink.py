"""Tests for OutputSink and RunHandle."""

from __future__ import annotations

from igmon.runners.sink import OutputSink, RunHandle


class TestOutputSink:
    """Tests for OutputSink."""

    def test_append_grows_text(self) -> None:
        """Appended chunks are concatenated in order."""
        sink = OutputSink()
        sink.append("a\n")
        sink.append("bc")

        assert sink.text == "a\nbc"
        assert len(sink) == 4

    def test_slice_and_tail(self) -> None:
        """slice() and tail() read by character offsets."""
        sink = OutputSink()
        sink.append("hello world")

        assert sink.slice(6) == "world"
        assert sink.slice(0, 5) == "hello"
        assert sink.tail(3) == "rld"
        assert sink.tail(100) == "hello world"
        assert sink.tail(0) == ""

    def test_empty_chunk_is_ignored(self) -> None:
        """Empty chunks neither grow the sink nor notify listeners."""
        sink = OutputSink()
        seen: list[str] = []
        sink.subscribe(seen.append)

        sink.append("")

        assert len(sink) == 0
        assert seen == []

    def test_subscribers_receive_chunks(self) -> None:
        """Subscribers are called synchronously with each chunk."""
        sink = OutputSink()
        seen: list[str] = []
        unsubscribe = sink.subscribe(seen.append)

        sink.append("one")
        unsubscribe()
        unsubscribe()
        sink.append("two")

        assert seen == ["one"]

    def test_clear_resets_content(self) -> None:
        """clear() empties the sink for a new run."""
        sink = OutputSink()
        sink.append("old")

        sink.clear()

        assert sink.text == ""
        assert len(sink) == 0


class TestRunHandle:
    """Tests for RunHandle completion signalling."""

    def test_signal_done_notifies_listener_once(self) -> None:
        """Completion is reported exactly once."""
        handle = RunHandle()
        calls: list[tuple[bool, str | None]] = []
        handle.add_terminal_listener(lambda ok, detail: calls.append((ok, detail)))

        handle.signal_done()
        handle.signal_error("late")

        assert calls == [(True, None)]
        assert handle.finished is True
        assert handle.succeeded is True

    def test_signal_error_carries_detail(self) -> None:
        """Errors reach listeners with their detail."""
        handle = RunHandle()
        calls: list[tuple[bool, str | None]] = []
        handle.add_terminal_listener(lambda ok, detail: calls.append((ok, detail)))

        handle.signal_error("exit code 1")

        assert calls == [(False, "exit code 1")]
        assert handle.succeeded is False

    def test_listener_added_after_finish_called_immediately(self) -> None:
        """A late listener still learns how the run ended."""
        handle = RunHandle()
        handle.signal_error("boom")
        calls: list[tuple[bool, str | None]] = []

        handle.add_terminal_listener(lambda ok, detail: calls.append((ok, detail)))

        assert calls == [(False, "boom")]

    def test_removed_listener_not_called(self) -> None:
        """remove_terminal_listener() detaches a listener."""
        handle = RunHandle()
        calls: list[bool] = []

        def listener(ok: bool, detail: str | None) -> None:
            calls.append(ok)

        handle.add_terminal_listener(listener)
        handle.remove_terminal_listener(listener)
        handle.signal_done()

        assert calls == []

    def test_output_after_finish_ignored(self) -> None:
        """Output reported after completion does not reach the sink."""
        handle = RunHandle()
        handle.append_observed("before\n")
        handle.signal_done()

        handle.append_observed("after\n")

        assert handle.sink.text == "before\n"
