"""igmon constants shared by the runner, the session and the CLI.

This module is the single source of truth for the output protocol between
igmon and the external monitor process, and for the default timings of a run.
"""

from __future__ import annotations

import sys

# =============================================================================
# Output Protocol
# =============================================================================

#: Prefix of the single line carrying the serialized run results
RESULTS_PREFIX: str = "RESULTS_JSON:"

#: Environment variable through which the job configuration is handed over
CONFIG_ENV_VAR: str = "IGMON_CONFIG_JSON"

#: Log tags the monitor prefixes its lines with, in display precedence order
LOG_TAGS: tuple[str, ...] = (
    "SUCCESS",
    "CRITICAL",
    "ERROR",
    "WARNING",
    "INFO",
    "DEBUG",
)

# =============================================================================
# External Monitor
# =============================================================================

#: Module implementing the monitor job
MONITOR_MODULE: str = "instagram_monitor"

#: Command launching one monitor run
DEFAULT_MONITOR_COMMAND: tuple[str, ...] = (
    sys.executable,
    "-c",
    f"import {MONITOR_MODULE}; {MONITOR_MODULE}.run_from_web()",
)

#: Command proving the runtime can import the monitor
DEFAULT_PROBE_COMMAND: tuple[str, ...] = (
    sys.executable,
    "-c",
    f"import {MONITOR_MODULE}",
)

# =============================================================================
# Timings
# =============================================================================

#: Seconds between two polls of the output sink
DEFAULT_POLL_INTERVAL: float = 0.1

#: Seconds to wait for the external runtime to become ready (3 minutes)
DEFAULT_READINESS_TIMEOUT: float = 180.0

#: Seconds between "still working" messages while the runtime loads
DEFAULT_HEARTBEAT_INTERVAL: float = 30.0

#: Seconds between SIGTERM and SIGKILL when stopping the monitor
TERMINATION_GRACE_PERIOD: float = 2.0

#: Characters of output kept in unexpected-termination diagnostics
DEFAULT_TAIL_CHARS: int = 500

#: Bytes read from the monitor's stdout per chunk
READ_CHUNK_SIZE: int = 65536
