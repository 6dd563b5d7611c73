"""Domain error taxonomy.

Every error is recoverable at the caller: services raise these, the API layer
maps them to HTTP responses, and workers log them per item.
"""


class ReminderAppError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ReminderAppError):
    """Input rejected before any backend call (blank title, self-share, ...)."""


class PermissionDeniedError(ReminderAppError):
    """Caller lacks the rights for the requested operation."""


class UpgradeRequiredError(PermissionDeniedError):
    """Operation is gated by the subscription tier."""

    def __init__(self, feature: str, message: str | None = None) -> None:
        super().__init__(message or f"Upgrade to Pro to unlock {feature}")
        self.feature = feature


class DevicePermissionDeniedError(PermissionDeniedError):
    """The device or media source refused access."""


class UploadFailedError(ReminderAppError):
    """Blob upload failed; no attachment was produced."""


class PersistenceError(ReminderAppError):
    """The store rejected the operation; pre-operation state is retained."""


class InvalidTransitionError(ReminderAppError):
    """A state machine rejected the requested transition."""


class NotificationError(ReminderAppError):
    """The device notification service refused to schedule or deliver."""


class NotFoundError(ReminderAppError):
    """The record does not exist or is not visible to the caller."""
