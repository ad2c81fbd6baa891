from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from perfhub.core.config import settings
from perfhub.routers.auth_deps import get_current_user
from perfhub.schemas.notification import MarkAllResult, NotificationResponse
from perfhub.services.notification import NotificationService
from perfhub.store import get_store
from perfhub.store.base import RecordStore

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
def get_notifications(
    unread_only: bool = False,
    store: RecordStore = Depends(get_store),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    return NotificationService(store).list_for_user(current_user["uid"], unread_only=unread_only)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_as_read(
    notification_id: str,
    store: RecordStore = Depends(get_store),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    service = NotificationService(store)
    notification = service.get_for_user(notification_id, current_user["uid"])
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    service.mark_read(notification_id)
    notification["read"] = True
    return notification


@router.post("/mark-all-read", response_model=MarkAllResult)
def mark_all_notifications_as_read(
    store: RecordStore = Depends(get_store),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    return {"updated": NotificationService(store).mark_all_read(current_user["uid"])}


@router.post("/demo", response_model=List[NotificationResponse])
def generate_demo_notifications(
    store: RecordStore = Depends(get_store),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    if not settings.enable_demo_notifications:
        raise HTTPException(status_code=404, detail="Demo notifications are disabled")
    return NotificationService(store).generate_demo(current_user["uid"])
