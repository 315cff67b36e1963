"""Runtime bootstrap feeding the readiness signal.

Before the first run, igmon proves the external runtime can load the monitor
by running a probe command. The outcome settles the ReadinessSignal that the
run reconciler waits on.
"""

from __future__ import annotations

from collections.abc import Sequence

from igmon.exceptions import RunnerError
from igmon.logging import get_logger
from igmon.runners.command import CommandRunner
from igmon.runners.readiness import ReadinessSignal

__all__ = ["RuntimeBootstrap"]

logger = get_logger(__name__)

# Characters of probe output kept as the failure reason
_REASON_CHARS = 500


class RuntimeBootstrap:
    """Probe the external runtime once and report readiness.

    Example:
        ```python
        signal = ReadinessSignal()
        bootstrap = RuntimeBootstrap(signal, ["python", "-c", "import instagram_monitor"])
        asyncio.create_task(bootstrap.run())
        await ReadinessGate(signal).wait()
        ```
    """

    def __init__(
        self,
        signal: ReadinessSignal,
        probe_command: Sequence[str],
        *,
        runner: CommandRunner | None = None,
        max_retries: int = 1,
    ) -> None:
        """Initialize the RuntimeBootstrap.

        Args:
            signal: Signal settled by the probe.
            probe_command: Command that succeeds when the runtime is usable.
                An empty command marks the runtime ready immediately.
            runner: Runner executing the probe. The runner's own timeout
                applies; the readiness gate bounds the overall wait.
            max_retries: Extra attempts for a failing probe.
        """
        self._signal = signal
        self._probe_command = tuple(probe_command)
        self._runner = runner if runner is not None else CommandRunner(timeout=None)
        self._max_retries = max_retries

    @property
    def signal(self) -> ReadinessSignal:
        return self._signal

    async def run(self) -> bool:
        """Run the probe and settle the signal.

        Returns:
            True if the runtime is ready.
        """
        if self._signal.settled:
            return self._signal.is_ready

        if not self._probe_command:
            self._signal.set_ready()
            return True

        logger.info("runtime_probe_started", command=self._probe_command[0])
        try:
            result = await self._runner.run(
                self._probe_command, max_retries=self._max_retries
            )
        except RunnerError as e:
            logger.warning("runtime_probe_failed", reason=e.message)
            self._signal.set_failed(e.message)
            return False
        except Exception as e:
            # The gate must still settle when the probe itself breaks
            logger.exception("runtime_probe_crashed")
            self._signal.set_failed(f"Runtime probe crashed: {e}")
            return False

        if result.success:
            logger.info("runtime_probe_succeeded", duration_ms=result.duration_ms)
            self._signal.set_ready()
            return True

        reason = (result.stderr or result.stdout).strip()[-_REASON_CHARS:]
        if not reason:
            reason = f"probe exited with code {result.returncode}"
        logger.warning(
            "runtime_probe_failed", returncode=result.returncode, reason=reason
        )
        self._signal.set_failed(reason)
        return False
