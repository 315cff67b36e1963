from __future__ import annotations

from igmon.exceptions.base import IgmonError


class NotificationError(IgmonError):
    """A push notification could not be delivered.

    Attributes:
        message: Human-readable error message.
        status: HTTP status returned by the server (if any).
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        """Initialize the NotificationError.

        Args:
            message: Human-readable error message.
            status: HTTP status returned by the server.
        """
        self.status = status
        super().__init__(message)
