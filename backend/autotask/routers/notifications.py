"""Notifications API router: the current user's in-app notifications."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from autotask.database import get_db
from autotask.errors import NotFoundError
from autotask.schemas.notification import NotificationOut
from autotask.services import notification_service
from autotask.middleware.auth_middleware import get_current_user
from autotask.models.user import User

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationOut])
def list_notifications(
    unread_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notification_service.get_notifications(db, current_user.user_id, unread_only)


@router.patch("/{noti_id}/read", response_model=NotificationOut)
def mark_read(noti_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    noti = notification_service.mark_read(db, noti_id, current_user.user_id)
    if noti is None:
        raise NotFoundError(f"Notification {noti_id} not found")
    return noti


@router.post("/read-all")
def mark_all_read(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    notification_service.mark_all_read(db, current_user.user_id)
    return {"message": "All notifications marked as read"}
