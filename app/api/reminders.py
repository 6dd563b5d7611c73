"""Reminder API endpoints."""

from uuid import UUID

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from app.api.deps import Attachments, CurrentUser, DBSession, Store
from app.models.attachment import AttachmentType, preview_attachments
from app.models.reminder import (
    ReminderCardResponse,
    ReminderCreate,
    ReminderCreatedResponse,
    ReminderListResponse,
    ReminderResponse,
    ReminderStatusUpdate,
    ReminderUpdate,
)
from app.models.shared_reminder import ShareCreate, SharedReminderResponse
from app.services import sharing, tiers
from app.services.reminders import ReminderResult

router = APIRouter(prefix="/api/reminders", tags=["Reminders"])


def _created(result: ReminderResult) -> ReminderCreatedResponse:
    response = ReminderCreatedResponse.model_validate(result.reminder)
    response.notification_error = result.notification_error
    return response


def _list(reminders) -> ReminderListResponse:
    return ReminderListResponse(
        reminders=[ReminderResponse.model_validate(r) for r in reminders],
        total=len(reminders),
    )


@router.post("", response_model=ReminderCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_reminder_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
    reminder_data: ReminderCreate,
) -> ReminderCreatedResponse:
    """Create a reminder and arm its trigger.

    The reminder is saved even if the trigger cannot be armed; the response
    then carries ``notification_error``.
    """
    return _created(store.create(session, current_user, reminder_data))


@router.get("", response_model=ReminderListResponse)
def list_reminders_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
) -> ReminderListResponse:
    """Reminders created by or assigned to the caller."""
    return _list(store.get_for_user(session, current_user.id))


@router.get("/shared", response_model=ReminderListResponse)
def list_shared_reminders_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
) -> ReminderListResponse:
    return _list(store.get_shared(session, current_user.id))


@router.get("/upcoming", response_model=ReminderListResponse)
def list_upcoming_reminders_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
    hours: int = Query(default=24, ge=1, le=24 * 31, description="Look-ahead window"),
) -> ReminderListResponse:
    return _list(store.get_upcoming(session, current_user.id, hours=hours))


@router.get("/cards", response_model=list[ReminderCardResponse])
def list_reminder_cards_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
) -> list[ReminderCardResponse]:
    """Compact list view with at most three attachments per card."""
    return [
        ReminderCardResponse(
            id=r.id,
            title=r.title,
            scheduled_at=r.scheduled_at,
            status=r.status,
            preview=preview_attachments(r.attachment_list),
        )
        for r in store.get_for_user(session, current_user.id)
    ]


@router.get("/{reminder_id}", response_model=ReminderResponse)
def get_reminder_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
    reminder_id: UUID,
) -> ReminderResponse:
    return ReminderResponse.model_validate(store.get_visible(session, current_user.id, reminder_id))


@router.patch("/{reminder_id}", response_model=ReminderCreatedResponse)
def edit_reminder_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
    reminder_id: UUID,
    changes: ReminderUpdate,
) -> ReminderCreatedResponse:
    """Edit a pending reminder; a new time re-arms its trigger."""
    return _created(store.edit(session, current_user.id, reminder_id, changes))


@router.post("/{reminder_id}/status", response_model=ReminderResponse)
def update_reminder_status_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
    reminder_id: UUID,
    status_data: ReminderStatusUpdate,
) -> ReminderResponse:
    """Mark a pending reminder completed or cancelled."""
    reminder = store.update_status(session, current_user.id, reminder_id, status_data.status)
    return ReminderResponse.model_validate(reminder)


@router.delete("/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reminder_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
    reminder_id: UUID,
) -> None:
    store.delete(session, current_user.id, reminder_id)


# -------------------------------------------------------------------------
# Sharing
# -------------------------------------------------------------------------


@router.get("/{reminder_id}/shares", response_model=list[SharedReminderResponse])
def list_shares_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
    reminder_id: UUID,
) -> list[SharedReminderResponse]:
    reminder = store.get_visible(session, current_user.id, reminder_id)
    return [SharedReminderResponse.model_validate(s) for s in sharing.list_shares(session, reminder.id)]


@router.put("/{reminder_id}/shares", response_model=SharedReminderResponse)
def share_reminder_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    reminder_id: UUID,
    share_data: ShareCreate,
) -> SharedReminderResponse:
    """Grant (or change) a user's access to a reminder."""
    shared = sharing.share(
        session,
        current_user.id,
        reminder_id,
        share_data.user_id,
        share_data.permission,
    )
    return SharedReminderResponse.model_validate(shared)


@router.delete("/{reminder_id}/shares/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_share_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    reminder_id: UUID,
    user_id: UUID,
) -> None:
    sharing.revoke(session, current_user.id, reminder_id, user_id)


# -------------------------------------------------------------------------
# Attachments
# -------------------------------------------------------------------------


@router.post("/{reminder_id}/attachments", response_model=ReminderResponse)
async def add_attachment_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
    attachments: Attachments,
    reminder_id: UUID,
    kind: AttachmentType = Form(...),
    file: UploadFile = File(...),
) -> ReminderResponse:
    """Upload a file and append it to an existing reminder."""
    # Checked before the upload so a rejected add leaves no blob behind
    store.require_attachment_room(session, current_user.id, reminder_id)

    data = await file.read()
    attachment = attachments.attach_upload(kind, file.filename or "file", data, file.content_type)
    updated = store.add_attachment(session, current_user.id, reminder_id, attachment)
    return ReminderResponse.model_validate(updated)


@router.delete("/{reminder_id}/attachments/{attachment_id}", response_model=ReminderResponse)
def remove_attachment_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    store: Store,
    reminder_id: UUID,
    attachment_id: str,
) -> ReminderResponse:
    reminder = store.remove_attachment(session, current_user.id, reminder_id, attachment_id)
    return ReminderResponse.model_validate(reminder)


uploads_router = APIRouter(prefix="/api/attachments", tags=["Attachments"])


@uploads_router.post("", status_code=status.HTTP_201_CREATED)
async def upload_draft_attachment_endpoint(
    current_user: CurrentUser,
    attachments: Attachments,
    kind: AttachmentType = Form(...),
    draft_count: int = Form(default=0, ge=0, description="Attachments already on the draft"),
    file: UploadFile = File(...),
) -> dict:
    """Upload media for a reminder that is still being drafted.

    The draft's current attachment count is checked against the caller's tier
    before any bytes are stored.
    """
    tiers.require_attachment_slot(draft_count, current_user.subscription_tier)
    data = await file.read()
    attachment = attachments.attach_upload(kind, file.filename or "file", data, file.content_type)
    return attachment.model_dump(mode="json")
