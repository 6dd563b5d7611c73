"""API dependencies for dependency injection."""

from collections.abc import Generator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlmodel import Session

from app.config import get_settings
from app.db.session import get_session
from app.errors import NotFoundError
from app.integrations.blob_storage import BlobStorage
from app.models.profile import Profile
from app.services.attachments import AttachmentManager
from app.services.notification_center import NotificationCenter
from app.services.profiles import ensure_profile, get_profile
from app.services.reminders import ReminderStore
from app.services.scheduler import Scheduler

settings = get_settings()
security = HTTPBearer()


def get_db_session() -> Generator[Session, None, None]:
    """Get database session dependency."""
    yield from get_session()


DBSession = Annotated[Session, Depends(get_db_session)]


def get_current_user(
    session: DBSession,
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Profile:
    """Resolve the caller's profile from the identity provider's JWT.

    A token carrying an ``email`` claim provisions the profile on first use.
    """
    token = credentials.credentials
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token,
            settings.AUTH_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_aud": False},
        )
        subject: str | None = payload.get("sub")
        if subject is None:
            raise credentials_exception
        user_id = UUID(subject)
    except (JWTError, ValueError):
        raise credentials_exception

    email: str | None = payload.get("email")
    try:
        if email:
            return ensure_profile(session, user_id, email)
        return get_profile(session, user_id)
    except NotFoundError:
        raise credentials_exception


CurrentUser = Annotated[Profile, Depends(get_current_user)]


def get_notification_center(request: Request) -> NotificationCenter:
    """The process-wide center created in the application lifespan."""
    return request.app.state.notification_center


def get_blob_storage(request: Request) -> BlobStorage:
    return request.app.state.blob_storage


def get_scheduler(
    center: Annotated[NotificationCenter, Depends(get_notification_center)],
) -> Scheduler:
    return Scheduler(center)


def get_reminder_store(
    scheduler: Annotated[Scheduler, Depends(get_scheduler)],
) -> ReminderStore:
    return ReminderStore(scheduler)


def get_attachment_manager(
    blob_storage: Annotated[BlobStorage, Depends(get_blob_storage)],
) -> AttachmentManager:
    # Server side uploads arrive as request bodies; there is no media picker
    return AttachmentManager(media_source=None, blob_storage=blob_storage)


Store = Annotated[ReminderStore, Depends(get_reminder_store)]
Attachments = Annotated[AttachmentManager, Depends(get_attachment_manager)]
