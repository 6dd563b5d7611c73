"""Device/platform notification service clients.

Contract:
    request_permission() -> bool
    schedule_at(time, payload) -> trigger id
    cancel(trigger id)            (idempotent)
    present(payload)              (platform-level notification, app backgrounded)
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any
from uuid import uuid4

import httpx

from app.config import get_settings
from app.errors import NotificationError

logger = logging.getLogger(__name__)


class NotificationService(ABC):
    """Abstract device notification service."""

    @abstractmethod
    def request_permission(self) -> bool:
        """Ask the platform for permission to schedule notifications."""

    @abstractmethod
    def schedule_at(self, fire_at: datetime, payload: dict[str, Any]) -> str:
        """Register a timer and return its trigger id.

        Raises:
            NotificationError: If the platform refuses to schedule
        """

    @abstractmethod
    def cancel(self, trigger_id: str) -> None:
        """Cancel a pending timer. Unknown or consumed ids are ignored."""

    @abstractmethod
    def present(self, payload: dict[str, Any]) -> None:
        """Show a platform-level notification immediately."""

    def acknowledge(self, trigger_id: str) -> None:
        """Record that a timer fired and was consumed."""

    def close(self) -> None:
        """Release client resources."""


class LocalNotificationService(NotificationService):
    """In-process notification service.

    Keeps timers in memory and logs presented notifications. Fires are driven
    by the trigger worker, not by this class.
    """

    def __init__(self, permission_granted: bool = True) -> None:
        self.permission_granted = permission_granted
        self.scheduled: dict[str, tuple[datetime, dict[str, Any]]] = {}
        self.cancelled: list[str] = []
        self.presented: list[dict[str, Any]] = []

    def request_permission(self) -> bool:
        return self.permission_granted

    def schedule_at(self, fire_at: datetime, payload: dict[str, Any]) -> str:
        if not self.permission_granted:
            raise NotificationError("Notification permission not granted")
        trigger_id = f"local-{uuid4().hex}"
        self.scheduled[trigger_id] = (fire_at, dict(payload))
        return trigger_id

    def cancel(self, trigger_id: str) -> None:
        if self.scheduled.pop(trigger_id, None) is not None:
            self.cancelled.append(trigger_id)

    def acknowledge(self, trigger_id: str) -> None:
        self.scheduled.pop(trigger_id, None)

    def present(self, payload: dict[str, Any]) -> None:
        self.presented.append(dict(payload))
        logger.info(
            "[LOCAL] Presenting notification",
            extra={"reminder_id": payload.get("reminder_id"), "title": payload.get("title")},
        )


class PushGatewayNotificationService(NotificationService):
    """Notification service backed by a push gateway HTTP API."""

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
            self._client = httpx.Client(timeout=self.timeout, headers=headers)
        return self._client

    def request_permission(self) -> bool:
        try:
            response = self.client.get(f"{self.base_url}/v1/permissions")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Push gateway permission check failed", extra={"error": str(e)})
            return False
        return bool(response.json().get("granted", False))

    def schedule_at(self, fire_at: datetime, payload: dict[str, Any]) -> str:
        try:
            response = self.client.post(
                f"{self.base_url}/v1/triggers",
                json={"fire_at": fire_at.isoformat() + "Z", "payload": payload},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationError(
                f"Push gateway refused trigger with HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise NotificationError(f"Push gateway unavailable: {e}") from e
        return str(response.json()["id"])

    def cancel(self, trigger_id: str) -> None:
        try:
            response = self.client.delete(f"{self.base_url}/v1/triggers/{trigger_id}")
            if response.status_code != 404:
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(f"Failed to cancel trigger {trigger_id}: {e}") from e

    def present(self, payload: dict[str, Any]) -> None:
        try:
            response = self.client.post(f"{self.base_url}/v1/notifications", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(f"Failed to deliver notification: {e}") from e

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None


def build_notification_service() -> NotificationService:
    """Notification service configured from settings."""
    settings = get_settings()
    if settings.PUSH_GATEWAY_URL:
        return PushGatewayNotificationService(
            base_url=settings.PUSH_GATEWAY_URL,
            api_key=settings.PUSH_GATEWAY_KEY,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    return LocalNotificationService()
