"""Protocol definitions for the process boundary.

An adapter connects igmon to whatever actually executes the monitor job
(a local subprocess, a container, a test double). It is the only place that
knows how output is captured and how completion is detected.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from igmon.runners.sink import RunHandle

__all__ = ["ExternalRunAdapter"]


@runtime_checkable
class ExternalRunAdapter(Protocol):
    """Protocol for objects launching one external monitor run.

    Example:
        A minimal in-memory adapter::

            class ScriptedAdapter:
                async def start(self, handle, config):
                    handle.append_observed("[INFO] start\\n")
                    handle.signal_done()

                async def close(self):
                    pass
    """

    async def start(self, handle: RunHandle, config: Mapping[str, Any]) -> None:
        """Launch the run and return without waiting for it to finish.

        Output must be reported with ``handle.append_observed()`` and
        completion with exactly one of ``handle.signal_done()`` or
        ``handle.signal_error()``.

        Raises:
            RunnerError: If the run cannot be launched.
        """
        ...

    async def close(self) -> None:
        """Release the run's resources, stopping it if still running."""
        ...
