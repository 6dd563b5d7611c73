"""Profile service: lookup, preferences, subscription tier and user search."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, or_, select

from app.errors import NotFoundError, PersistenceError
from app.models.profile import NotificationPreferences, Profile, ProfileUpdate, SubscriptionTier

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


def get_profile(session: Session, user_id: UUID) -> Profile:
    profile = session.get(Profile, user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    return profile


def ensure_profile(session: Session, user_id: UUID, email: str) -> Profile:
    """Get the profile for an authenticated user, creating it on first sight."""
    profile = session.get(Profile, user_id)
    if profile is not None:
        return profile

    profile = Profile(id=user_id, email=email)
    session.add(profile)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError("Failed to create profile") from e
    session.refresh(profile)

    logger.info("Profile created", extra={"user_id": str(user_id)})
    return profile


def update_profile(session: Session, profile: Profile, profile_data: ProfileUpdate) -> Profile:
    """Update display fields and notification preferences."""
    update_data = profile_data.model_dump(exclude_unset=True)

    for key, value in update_data.items():
        if key == "notification_preferences" and value is not None:
            profile.notification_preferences = dict(value)
        else:
            setattr(profile, key, value)

    profile.updated_at = datetime.utcnow()
    session.add(profile)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError("Failed to update profile") from e
    session.refresh(profile)
    return profile


def update_notification_preferences(
    session: Session,
    profile: Profile,
    preferences: NotificationPreferences,
) -> Profile:
    return update_profile(session, profile, ProfileUpdate(notification_preferences=preferences))


def update_subscription_tier(
    session: Session,
    user_id: UUID,
    tier: SubscriptionTier,
) -> Profile | None:
    """Set a user's subscription tier.

    Returns:
        The updated profile, or None if the user is unknown
    """
    profile = session.get(Profile, user_id)
    if profile is None:
        logger.warning("Tier update for unknown user", extra={"user_id": str(user_id)})
        return None

    profile.subscription_tier = tier
    profile.updated_at = datetime.utcnow()
    session.add(profile)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError("Failed to update subscription tier") from e
    session.refresh(profile)

    logger.info(
        "Subscription tier updated",
        extra={"user_id": str(user_id), "tier": tier.value},
    )
    return profile


def search_users(
    session: Session,
    query: str,
    limit: int = SEARCH_LIMIT,
    exclude_id: UUID | None = None,
) -> list[Profile]:
    """Case-insensitive substring match on email or display name."""
    term = query.strip()
    if not term:
        return []

    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    statement = select(Profile).where(
        or_(
            col(Profile.email).ilike(pattern, escape="\\"),
            col(Profile.display_name).ilike(pattern, escape="\\"),
        )
    )
    if exclude_id is not None:
        statement = statement.where(Profile.id != exclude_id)

    return list(session.exec(statement.order_by(Profile.email).limit(limit)).all())
