"""igmon: terminal console for running the follower monitor job."""

from __future__ import annotations

__version__ = "0.1.0"
