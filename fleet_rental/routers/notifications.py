# fleet_rental/routers/notifications.py
from fastapi import APIRouter, Depends

from fleet_rental.dependencies import get_notification_feed
from fleet_rental.schemas.notification import NotificationFeedOut
from fleet_rental.services.notification_service import NotificationFeed

router = APIRouter()


@router.get("/notifications", response_model=NotificationFeedOut, summary="Unread notifications")
async def get_notifications(refresh: bool = False, feed: NotificationFeed = Depends(get_notification_feed)):
    """Served from the polled feed; `refresh=true` (or an empty feed) fetches now."""
    if refresh or feed.last_refreshed is None:
        await feed.refresh()
    return feed.snapshot()


@router.post("/notifications/{notification_id}/read", summary="Mark a notification read")
async def mark_read(notification_id: str, feed: NotificationFeed = Depends(get_notification_feed)):
    await feed.mark_read(notification_id)
    return {"status": "read", "notification_id": notification_id}


@router.post("/notifications/confirm-reservation/{reservation_id}", summary="Confirm a pending reservation")
async def confirm_reservation(reservation_id: str, feed: NotificationFeed = Depends(get_notification_feed)):
    await feed.confirm_reservation(reservation_id)
    return {"status": "confirmed", "reservation_id": reservation_id}
