"""Profile API endpoints."""

from fastapi import APIRouter, Query

from app.api.deps import CurrentUser, DBSession
from app.models.profile import ProfileResponse, ProfileUpdate, UserSummary
from app.services.profiles import search_users, update_profile

router = APIRouter(prefix="/api/profiles", tags=["Profiles"])


@router.get("/me", response_model=ProfileResponse)
def get_me_endpoint(current_user: CurrentUser) -> ProfileResponse:
    """Get the caller's profile."""
    return ProfileResponse.model_validate(current_user)


@router.patch("/me", response_model=ProfileResponse)
def update_me_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    profile_data: ProfileUpdate,
) -> ProfileResponse:
    """Update display fields and notification preferences."""
    return ProfileResponse.model_validate(update_profile(session, current_user, profile_data))


@router.get("/search", response_model=list[UserSummary])
def search_users_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    q: str = Query(min_length=1, max_length=100, description="Email or name fragment"),
) -> list[UserSummary]:
    """Find users to assign or share with; the caller is excluded."""
    return [
        UserSummary.model_validate(p)
        for p in search_users(session, q, exclude_id=current_user.id)
    ]
