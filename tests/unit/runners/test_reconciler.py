"""Tests for RunReconciler.

Runs are driven by ScriptedAdapter, an in-memory adapter replaying output
writes, pauses and completion signals, so every interleaving is reproducible.
"""

from __future__ import annotations

import pytest

from igmon.exceptions import ExternalProcessError, RunnerError
from igmon.runners.models import (
    FailureKind,
    LogLine,
    RunFailure,
    RunState,
    RunSuccess,
    StreamItem,
)
from igmon.runners.readiness import ReadinessGate
from igmon.runners.reconciler import CRITICAL_PREFIX, RunReconciler

from tests.fixtures.runners import (
    Done,
    Fail,
    Pause,
    ScriptedAdapter,
    Write,
    make_payload,
    results_line,
)

POLL = 0.01


async def collect(
    reconciler: RunReconciler, config: dict | None = None
) -> list[StreamItem]:
    return [item async for item in reconciler.stream(config or {})]


def lines_of(items: list[StreamItem]) -> list[str]:
    return [item.content for item in items if isinstance(item, LogLine)]


class TestRunReconcilerSuccess:
    """Tests for runs delivering results."""

    @pytest.mark.asyncio
    async def test_output_growing_across_three_polls(
        self, ready_gate: ReadinessGate
    ) -> None:
        """Lines arrive in order across polls, then the outcome comes last."""
        adapter = ScriptedAdapter(
            [
                Write("[INFO] start\n"),
                Pause(POLL * 5),
                Write("[INFO] working\n[WARNING] slow\n"),
                Pause(POLL * 5),
                Write(
                    'RESULTS_JSON:{"newFollowers":{"target":"x","users":[]},'
                    '"downloadedMediaCount":0}\n'
                ),
                Done(),
            ]
        )
        reconciler = RunReconciler(adapter, readiness=ready_gate, poll_interval=POLL)

        items = await collect(reconciler)

        assert lines_of(items) == ["[INFO] start", "[INFO] working", "[WARNING] slow"]
        outcome = items[-1]
        assert isinstance(outcome, RunSuccess)
        assert outcome.payload.new_followers.target == "x"
        assert reconciler.state is RunState.DONE
        assert reconciler.outcome is outcome

    @pytest.mark.asyncio
    async def test_lines_written_with_results_are_flushed_first(self) -> None:
        """Lines written just before the results line precede the outcome."""
        adapter = ScriptedAdapter(
            [Write("[INFO] a\n[INFO] b\n" + results_line()), Done()]
        )
        reconciler = RunReconciler(adapter, poll_interval=POLL)

        items = await collect(reconciler)

        assert lines_of(items) == ["[INFO] a", "[INFO] b"]
        assert isinstance(items[-1], RunSuccess)
        assert items[-1].payload == make_payload()

    @pytest.mark.asyncio
    async def test_lines_after_results_are_dropped(self) -> None:
        """Nothing written after the results line is surfaced."""
        adapter = ScriptedAdapter(
            [Write(results_line() + "[INFO] trailing\n"), Done()]
        )
        reconciler = RunReconciler(adapter, poll_interval=POLL)

        items = await collect(reconciler)

        assert lines_of(items) == []
        assert isinstance(items[-1], RunSuccess)

    @pytest.mark.asyncio
    async def test_config_forwarded_to_adapter(self) -> None:
        """The job configuration reaches the adapter unchanged."""
        adapter = ScriptedAdapter([Write(results_line()), Done()])
        reconciler = RunReconciler(adapter, poll_interval=POLL)

        await collect(reconciler, {"targets": ["x"], "username": "u"})

        assert adapter.config == {"targets": ["x"], "username": "u"}

    @pytest.mark.asyncio
    async def test_adapter_closed_once(self) -> None:
        """The adapter is released exactly once per run."""
        adapter = ScriptedAdapter([Write(results_line()), Done()])
        reconciler = RunReconciler(adapter, poll_interval=POLL)

        await collect(reconciler)

        assert adapter.closed == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("chunk_size", [1, 3, 7, 64])
    async def test_chunking_does_not_change_emitted_lines(
        self, chunk_size: int
    ) -> None:
        """However output is chunked, each non-blank line is emitted once."""
        text = (
            "[INFO] one\n\n   \n[DEBUG] two\n[ERROR] three\n  indented  \n"
            + results_line()
        )
        steps: list = []
        for i in range(0, len(text), chunk_size):
            steps.append(Write(text[i : i + chunk_size]))
            steps.append(Pause(0))
        steps.append(Done())
        reconciler = RunReconciler(ScriptedAdapter(steps), poll_interval=POLL)

        items = await collect(reconciler)

        assert lines_of(items) == [
            "[INFO] one",
            "[DEBUG] two",
            "[ERROR] three",
            "indented",
        ]
        assert isinstance(items[-1], RunSuccess)


class TestRunReconcilerFailure:
    """Tests for runs ending without results."""

    @pytest.mark.asyncio
    async def test_readiness_timeout(self, pending_gate: ReadinessGate) -> None:
        """A runtime that never becomes ready fails with a timeout.

        The run is never launched, so no output lines are emitted; only the
        diagnostic line announcing the failure precedes the outcome.
        """
        adapter = ScriptedAdapter([Write("[INFO] never seen\n"), Done()])
        reconciler = RunReconciler(adapter, readiness=pending_gate, poll_interval=POLL)

        items = await collect(reconciler)

        assert len(items) == 2
        critical, outcome = items
        assert isinstance(outcome, RunFailure)
        assert outcome.kind is FailureKind.TIMEOUT
        assert isinstance(critical, LogLine)
        assert critical.content == f"{CRITICAL_PREFIX} {outcome.message}"
        assert adapter.started is False
        assert reconciler.state is RunState.FAILED

    @pytest.mark.asyncio
    async def test_runtime_unavailable(self, pending_gate: ReadinessGate) -> None:
        """A runtime reporting failure ends the run before launch."""
        pending_gate.signal.set_failed("No module named 'instagram_monitor'")
        reconciler = RunReconciler(
            ScriptedAdapter(), readiness=pending_gate, poll_interval=POLL
        )

        items = await collect(reconciler)

        outcome = items[-1]
        assert isinstance(outcome, RunFailure)
        assert outcome.kind is FailureKind.RUNTIME_UNAVAILABLE
        assert outcome.detail == "No module named 'instagram_monitor'"

    @pytest.mark.asyncio
    async def test_corrupted_results(self) -> None:
        """A corrupted results line fails with a decode error."""
        adapter = ScriptedAdapter(
            [
                Write("[INFO] before\n"),
                Pause(POLL * 3),
                Write('RESULTS_JSON:{"newFollowers": {"tar\n[INFO] after\n'),
                Done(),
            ]
        )
        reconciler = RunReconciler(adapter, poll_interval=POLL)

        items = await collect(reconciler)

        assert lines_of(items)[0] == "[INFO] before"
        assert "[INFO] after" not in lines_of(items)
        outcome = items[-1]
        assert isinstance(outcome, RunFailure)
        assert outcome.kind is FailureKind.DECODE_ERROR
        assert outcome.payload.output_zip_base64 == ""
        assert outcome.payload.generated_files == ()

    @pytest.mark.asyncio
    async def test_unexpected_termination(self) -> None:
        """Finishing without results reports a bounded output tail."""
        adapter = ScriptedAdapter(
            [Write("[INFO] " + "x" * 1000 + "\n[ERROR] gave up\n"), Done()]
        )
        reconciler = RunReconciler(adapter, poll_interval=POLL, tail_chars=500)

        items = await collect(reconciler)

        assert lines_of(items)[-2] == "[ERROR] gave up"
        outcome = items[-1]
        assert isinstance(outcome, RunFailure)
        assert outcome.kind is FailureKind.UNEXPECTED_TERMINATION
        assert outcome.detail is not None
        assert len(outcome.detail) == 500
        assert outcome.detail.endswith("[ERROR] gave up\n")

    @pytest.mark.asyncio
    async def test_process_error(self) -> None:
        """A failing process resolves as a process error."""
        adapter = ScriptedAdapter([Write("boom\n"), Fail("exit code 1")])
        reconciler = RunReconciler(adapter, poll_interval=POLL)

        items = await collect(reconciler)

        assert lines_of(items)[0] == "boom"
        outcome = items[-1]
        assert isinstance(outcome, RunFailure)
        assert outcome.kind is FailureKind.PROCESS_ERROR

    @pytest.mark.asyncio
    async def test_launch_failure(self) -> None:
        """An adapter that cannot launch ends the run as a process error."""
        adapter = ScriptedAdapter(
            start_error=ExternalProcessError("Command not found: python", exit_code=127)
        )
        reconciler = RunReconciler(adapter, poll_interval=POLL)

        items = await collect(reconciler)

        outcome = items[-1]
        assert isinstance(outcome, RunFailure)
        assert outcome.kind is FailureKind.PROCESS_ERROR
        assert outcome.message == "Command not found: python"
        assert adapter.closed == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_internal_error(self) -> None:
        """Programming errors inside a run never escape the stream."""
        adapter = ScriptedAdapter(start_error=KeyError("missing"))
        reconciler = RunReconciler(adapter, poll_interval=POLL)

        items = await collect(reconciler)

        outcome = items[-1]
        assert isinstance(outcome, RunFailure)
        assert outcome.kind is FailureKind.INTERNAL_ERROR
        assert lines_of(items) == [f"{CRITICAL_PREFIX} {outcome.message}"]

    @pytest.mark.asyncio
    async def test_every_failure_preceded_by_one_critical_line(self) -> None:
        """Exactly one diagnostic line announces a failure, right before it."""
        adapter = ScriptedAdapter([Write("[INFO] x\n"), Done()])
        reconciler = RunReconciler(adapter, poll_interval=POLL)

        items = await collect(reconciler)

        critical = [line for line in lines_of(items) if line.startswith(CRITICAL_PREFIX)]
        assert len(critical) == 1
        assert isinstance(items[-2], LogLine)
        assert items[-2].content == critical[0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "ending",
        [Done(), Fail("output could not be read:\nbroken pipe")],
        ids=["unexpected-termination", "multiline-process-error"],
    )
    async def test_failure_line_is_single_line(self, ending: Done | Fail) -> None:
        """The diagnostic line never carries the output tail or line breaks."""
        adapter = ScriptedAdapter([Write("[INFO] a\n[WARNING] b\n"), ending])
        reconciler = RunReconciler(adapter, poll_interval=POLL)

        items = await collect(reconciler)

        lines = lines_of(items)
        assert all("\n" not in line for line in lines)
        assert lines[:2] == ["[INFO] a", "[WARNING] b"]
        assert len(lines) == 3
        assert lines[-1].startswith(CRITICAL_PREFIX)
        assert "[INFO] a" not in lines[-1]
        outcome = items[-1]
        assert isinstance(outcome, RunFailure)
        assert outcome.detail == "[INFO] a\n[WARNING] b\n"


class TestRunReconcilerLifecycle:
    """Tests for reconciler construction and reuse."""

    def test_poll_interval_must_be_positive(self) -> None:
        """A zero poll interval is rejected."""
        with pytest.raises(ValueError, match="poll_interval"):
            RunReconciler(ScriptedAdapter(), poll_interval=0)

    def test_initial_state(self) -> None:
        """A new reconciler is initializing and has no handle."""
        reconciler = RunReconciler(ScriptedAdapter(), run_id="abc")

        assert reconciler.state is RunState.INITIALIZING
        assert reconciler.run_id == "abc"
        assert reconciler.handle is None
        assert reconciler.outcome is None

    @pytest.mark.asyncio
    async def test_stream_cannot_restart(self) -> None:
        """A reconciler streams a single run."""
        reconciler = RunReconciler(
            ScriptedAdapter([Write(results_line()), Done()]), poll_interval=POLL
        )
        await collect(reconciler)

        with pytest.raises(RunnerError, match="cannot be restarted"):
            await collect(reconciler)

    @pytest.mark.asyncio
    async def test_early_exit_closes_adapter(self) -> None:
        """A consumer leaving the stream early still releases the adapter."""
        adapter = ScriptedAdapter(
            [Write("[INFO] first\n"), Pause(10), Write(results_line()), Done()]
        )
        reconciler = RunReconciler(adapter, poll_interval=POLL)

        stream = reconciler.stream({})
        async for item in stream:
            assert isinstance(item, LogLine)
            break
        await stream.aclose()

        assert adapter.closed == 1
