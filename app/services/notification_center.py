"""Process-wide notification service object.

Constructed once at startup and disposed at shutdown. Holds the device
notification service, the notifier bus and the foreground flag that decides
whether a fire rings in-app or goes out as a platform notification.
"""

import logging

from app.events.bus import NotificationBus
from app.integrations.notifications import NotificationService

logger = logging.getLogger(__name__)


class NotificationCenter:
    """Owns notification resources for the lifetime of the process."""

    def __init__(self, service: NotificationService, bus: NotificationBus | None = None) -> None:
        self.service = service
        self.bus = bus or NotificationBus()
        self.foreground = False
        self.permission_granted = False
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> "NotificationCenter":
        """Request device permission and mark the center usable."""
        self.permission_granted = self.service.request_permission()
        if not self.permission_granted:
            logger.warning("Notification permission not granted; reminders will not be armed")
        self._started = True
        logger.info(
            "Notification center started",
            extra={"permission_granted": self.permission_granted},
        )
        return self

    def set_foreground(self, foreground: bool) -> None:
        self.foreground = foreground

    def close(self) -> None:
        """Detach subscribers and release the device service."""
        if not self._started:
            return
        self.bus.close()
        self.service.close()
        self._started = False
        logger.info("Notification center closed")

    def __enter__(self) -> "NotificationCenter":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.close()
