"""Shared fixtures: in-memory database, profiles and in-process services."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import app.models  # noqa: F401
from app.integrations.blob_storage import LocalBlobStorage
from app.integrations.notifications import LocalNotificationService
from app.models.profile import Profile, SubscriptionTier
from app.services.attachments import AttachmentManager
from app.services.notification_center import NotificationCenter
from app.services.reminders import ReminderStore
from app.services.scheduler import Scheduler


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    with Session(engine) as session:
        yield session


def make_profile(session: Session, email: str, tier: SubscriptionTier = SubscriptionTier.FREE, **kwargs) -> Profile:
    profile = Profile(email=email, subscription_tier=tier, **kwargs)
    session.add(profile)
    session.commit()
    session.refresh(profile)
    return profile


@pytest.fixture
def test_user(db_session: Session) -> Profile:
    """Free-tier user."""
    return make_profile(db_session, "free@example.com", display_name="Free User")


@pytest.fixture
def pro_user(db_session: Session) -> Profile:
    return make_profile(db_session, "pro@example.com", SubscriptionTier.PRO, display_name="Pro User")


@pytest.fixture
def other_user(db_session: Session) -> Profile:
    return make_profile(db_session, "bob@example.com", display_name="Bob")


@pytest.fixture
def notification_service() -> LocalNotificationService:
    return LocalNotificationService()


@pytest.fixture
def center(notification_service):
    center = NotificationCenter(notification_service).start()
    yield center
    center.close()


@pytest.fixture
def scheduler(center) -> Scheduler:
    return Scheduler(center)


@pytest.fixture
def store(scheduler) -> ReminderStore:
    return ReminderStore(scheduler)


@pytest.fixture
def blob_storage(tmp_path) -> LocalBlobStorage:
    return LocalBlobStorage(tmp_path / "blobs")


@pytest.fixture
def attachment_manager(blob_storage) -> AttachmentManager:
    return AttachmentManager(media_source=None, blob_storage=blob_storage)


@pytest.fixture
def in_one_hour() -> datetime:
    return datetime.utcnow().replace(microsecond=0) + timedelta(hours=1)
