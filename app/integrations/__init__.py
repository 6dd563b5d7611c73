"""Clients for external collaborators (blob storage, device notifications)."""

from app.integrations.blob_storage import (
    BlobStorage,
    HttpBlobStorage,
    LocalBlobStorage,
    build_blob_storage,
)
from app.integrations.notifications import (
    LocalNotificationService,
    NotificationService,
    PushGatewayNotificationService,
    build_notification_service,
)

__all__ = [
    "BlobStorage",
    "HttpBlobStorage",
    "LocalBlobStorage",
    "build_blob_storage",
    "NotificationService",
    "LocalNotificationService",
    "PushGatewayNotificationService",
    "build_notification_service",
]
