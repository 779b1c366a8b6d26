"""API Router for due-soon alerts."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from voice_calendar.api.models import NotificationsResponse
from voice_calendar.core.dependencies import get_local_store
from voice_calendar.database.local_store import LocalStore
from voice_calendar.features.notification_scheduler import check_for_notifications

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=NotificationsResponse)
def list_active_notifications(store: LocalStore = Depends(get_local_store)):
    return NotificationsResponse(notifications=[n for n in store.get_notifications() if not n.dismissed])


@router.post("/check", response_model=NotificationsResponse)
def run_notification_check(store: LocalStore = Depends(get_local_store)):
    """Runs the due-soon check now instead of waiting for the next interval."""
    return NotificationsResponse(notifications=check_for_notifications(store))


@router.post("/{notification_id}/dismiss", response_model=NotificationsResponse)
def dismiss(notification_id: str, store: LocalStore = Depends(get_local_store)):
    if not store.dismiss_notification(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Notification {notification_id} not found")
    return NotificationsResponse(notifications=[n for n in store.get_notifications() if not n.dismissed])
