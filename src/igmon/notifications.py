"""Push notifications for finished monitor runs, delivered through ntfy.

Notifications are best effort: delivery failures are retried with
exponential backoff, then logged and dropped. ``Notifier.send`` never raises.

Usage:
    notifier = Notifier(config.notifications)
    await notifier.send(
        "Instagram Monitor Finished",
        "Monitoring run completed successfully.",
        priority="default",
    )
"""

from __future__ import annotations

import aiohttp
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from igmon.config import NotificationConfig
from igmon.exceptions import NotificationError
from igmon.logging import get_logger

__all__ = ["Notifier", "NTFY_PRIORITIES", "DEFAULT_TIMEOUT"]

logger = get_logger(__name__)

#: Default timeout for HTTP requests in seconds
DEFAULT_TIMEOUT: float = 2.0

#: Base delay for exponential backoff retry in seconds
RETRY_BASE_DELAY: float = 0.5

#: ntfy priority mapping (name -> numeric value)
NTFY_PRIORITIES: dict[str, int] = {
    "min": 1,
    "low": 2,
    "default": 3,
    "high": 4,
    "urgent": 5,
}


class Notifier:
    """Send run notifications to an ntfy topic."""

    def __init__(
        self,
        config: NotificationConfig,
        *,
        max_retries: int = 2,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._config = config
        self._max_retries = max_retries
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        """True when notifications are enabled and a topic is configured."""
        return self._config.enabled and bool(self._config.topic)

    async def send(
        self,
        title: str,
        message: str,
        *,
        priority: str = "default",
        tags: list[str] | None = None,
    ) -> bool:
        """Deliver one notification.

        Args:
            title: Notification title.
            message: Notification body.
            priority: ntfy priority name (min, low, default, high, urgent).
            tags: Optional ntfy emoji tags.

        Returns:
            True if the server accepted the notification, False if
            notifications are disabled or delivery failed.
        """
        if not self.enabled:
            logger.debug("notification_skipped", title=title)
            return False

        url = f"{self._config.server.rstrip('/')}/{self._config.topic}"
        headers = {
            "Title": title,
            "Priority": str(NTFY_PRIORITIES.get(priority, NTFY_PRIORITIES["default"])),
        }
        if tags:
            headers["Tags"] = ",".join(tags)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_retries + 1),
                wait=wait_exponential(
                    multiplier=RETRY_BASE_DELAY, min=RETRY_BASE_DELAY, max=4
                ),
                retry=retry_if_exception_type(NotificationError),
                reraise=True,
            ):
                with attempt:
                    await self._post(url, message, headers)
        except (NotificationError, RetryError) as e:
            logger.warning(
                "notification_not_delivered",
                title=title,
                attempts=self._max_retries + 1,
                error=str(e),
            )
            return False

        logger.info("notification_sent", title=title)
        return True

    async def _post(self, url: str, message: str, headers: dict[str, str]) -> None:
        """POST one message, turning every transport problem into NotificationError."""
        try:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            async with (
                aiohttp.ClientSession(timeout=timeout) as session,
                session.post(url, data=message.encode("utf-8"), headers=headers) as resp,
            ):
                if resp.status != 200:
                    body = await resp.text()
                    raise NotificationError(
                        f"HTTP {resp.status}: {body}", status=resp.status
                    )
        except TimeoutError:
            raise NotificationError("Request timed out") from None
        except aiohttp.ClientError as e:
            raise NotificationError(f"Client error: {e}") from e
