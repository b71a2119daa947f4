"""Notification API endpoints."""

import uuid
from typing import List

from fastapi import APIRouter, Depends

from .. import crud, schemas
from ..deps import CurrentUserDep, SessionDep, get_current_user
from ..notification_service import NotificationService

router = APIRouter(
    prefix="/api/notifications",
    tags=["notifications"],
    dependencies=[Depends(get_current_user)],
)


@router.get("", response_model=List[schemas.Notification])
async def list_notifications(
    current_user: CurrentUserDep,
    db_session: SessionDep,
    skip: int = 0,
    limit: int = 50,
):
    """Get all notifications for the current user."""
    return await crud.get_user_notifications(db_session, current_user.id, skip, limit)


@router.get("/unread-count", response_model=dict)
async def get_unread_count(current_user: CurrentUserDep, db_session: SessionDep):
    count = await crud.get_unread_notifications_count(db_session, current_user.id)
    return {"unread_count": count}


@router.post("/{notification_id}/read", response_model=schemas.Notification)
async def mark_as_read(notification_id: uuid.UUID, current_user: CurrentUserDep, db_session: SessionDep):
    return await NotificationService.mark_read(db_session, current_user.id, notification_id)
