from fastapi import APIRouter, Depends
from typing import List

from stuwork.dependencies import get_notification_service
from stuwork.schemas.auth import MessageResponse
from stuwork.schemas.notification import MarkAllReadResponse, NotificationResponse
from stuwork.services.notification_service import NotificationService
from stuwork.utils.auth import get_current_user

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    current_user: dict = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.list_notifications(current_user)


@router.put("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(
    current_user: dict = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    updated = await notifications.mark_all_read(current_user)
    return {"message": "All notifications marked as read", "updated": updated}


@router.put("/{notification_id}/read", response_model=MessageResponse)
async def mark_read(
    notification_id: str,
    current_user: dict = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    await notifications.mark_read(current_user, notification_id)
    return {"message": "Notification marked as read"}
