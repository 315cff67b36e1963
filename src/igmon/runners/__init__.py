"""Monitor run machinery.

The pieces, from the process boundary inwards:
    - SubprocessRunAdapter drives a RunHandle with the monitor's output
    - SinkObserver settles the run's outcome from that output
    - LineEmitter surfaces new log lines exactly once
    - ReadinessGate / RuntimeBootstrap make sure the runtime is usable
    - RunReconciler merges all of it into one ordered stream
"""

from __future__ import annotations

from igmon.runners.adapter import SubprocessRunAdapter
from igmon.runners.bootstrap import RuntimeBootstrap
from igmon.runners.command import CommandResult, CommandRunner
from igmon.runners.emitter import LineEmitter
from igmon.runners.models import (
    FailureKind,
    LogLine,
    ResultPayload,
    RunFailure,
    RunOutcome,
    RunState,
    RunSuccess,
    StreamItem,
    UserDiff,
)
from igmon.runners.observer import SinkObserver
from igmon.runners.protocols import ExternalRunAdapter
from igmon.runners.readiness import ReadinessGate, ReadinessSignal
from igmon.runners.reconciler import RunReconciler
from igmon.runners.sentinel import (
    RESULTS_PREFIX,
    decode_sentinel,
    encode_sentinel,
    is_sentinel,
)
from igmon.runners.sink import OutputSink, RunHandle

__all__ = [
    # Models
    "FailureKind",
    "LogLine",
    "ResultPayload",
    "RunFailure",
    "RunOutcome",
    "RunState",
    "RunSuccess",
    "StreamItem",
    "UserDiff",
    # Results protocol
    "RESULTS_PREFIX",
    "decode_sentinel",
    "encode_sentinel",
    "is_sentinel",
    # Output
    "OutputSink",
    "RunHandle",
    "LineEmitter",
    "SinkObserver",
    # Readiness
    "ReadinessGate",
    "ReadinessSignal",
    "RuntimeBootstrap",
    # Process boundary
    "CommandResult",
    "CommandRunner",
    "ExternalRunAdapter",
    "SubprocessRunAdapter",
    # Coordination
    "RunReconciler",
]
