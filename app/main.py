"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel

from app.api.billing import router as billing_router
from app.api.profiles import router as profiles_router
from app.api.reminders import router as reminders_router
from app.api.reminders import uploads_router
from app.config import get_settings
from app.db.session import engine
from app.errors import (
    InvalidTransitionError,
    NotFoundError,
    NotificationError,
    PermissionDeniedError,
    PersistenceError,
    ReminderAppError,
    UpgradeRequiredError,
    UploadFailedError,
    ValidationError,
)
from app.integrations.blob_storage import build_blob_storage
from app.integrations.notifications import build_notification_service
from app.services.notification_center import NotificationCenter

settings = get_settings()
logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS_CODES: list[tuple[type[ReminderAppError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (UpgradeRequiredError, status.HTTP_402_PAYMENT_REQUIRED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (UploadFailedError, status.HTTP_502_BAD_GATEWAY),
    (NotificationError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_code_for(error: ReminderAppError) -> int:
    for error_type, code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and own the notification center for the process lifetime."""
    # Import models to register them with SQLModel
    from app.models import Profile, Reminder, ReminderTrigger, SharedReminder  # noqa: F401
    SQLModel.metadata.create_all(engine)

    center = NotificationCenter(build_notification_service()).start()
    app.state.notification_center = center
    app.state.blob_storage = build_blob_storage()
    try:
        yield
    finally:
        app.state.blob_storage.close()
        center.close()

app = FastAPI(
    title="Call Reminders API",
    description="Reminders that ring like a phone call",
    version="1.0.0",
    lifespan=lifespan,
)

cors_origins = [
    settings.FRONTEND_URL,
    "http://localhost:8081",
    "http://localhost:19006",
]
# Remove duplicates and empty strings
cors_origins = [origin for origin in set(cors_origins) if origin]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReminderAppError)
async def reminder_app_error_handler(request: Request, exc: ReminderAppError) -> JSONResponse:
    code = status_code_for(exc)
    if code >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error": exc.message},
        )
    content: dict = {"detail": exc.message, "error": type(exc).__name__}
    if isinstance(exc, UpgradeRequiredError):
        content["feature"] = exc.feature
    return JSONResponse(status_code=code, content=content)


# Register routers
app.include_router(reminders_router)
app.include_router(uploads_router)
app.include_router(profiles_router)
app.include_router(billing_router)


@app.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
