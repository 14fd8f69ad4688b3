# fleet_rental/services/notification_service.py
"""
Notification creation (side effect of booking and allocation events)
and the unread-notification feed polled by the dashboard.
"""

import asyncio
from datetime import datetime
from typing import Optional

from fleet_rental.config import settings
from fleet_rental.exceptions import AllocationConflict, ValidationError
from fleet_rental.schemas.booking import ReservationStatus, TERMINAL_RESERVATION_STATUSES
from fleet_rental.schemas.notification import Notification, NotificationFeedOut, NotificationPriority
from fleet_rental.services.availability_service import find_booking_conflicts
from fleet_rental.services.entity_client import EntityClient
from fleet_rental.services.poller import LatestResponsePoller
from fleet_rental.utils.dates import iso, utc_now
from fleet_rental.utils.logger import get_logger

logger = get_logger(__name__)


async def create_notification(client: EntityClient, notification_type: str, title: str, message: str,
                              priority: NotificationPriority, related_entity_id: Optional[str],
                              related_entity_type: str = "reservation",
                              action_required: bool = False) -> Notification:
    """Create a notification in the entity store."""
    notification = await client.notifications.create({
        "type": notification_type,
        "title": title,
        "message": message,
        "priority": priority.value,
        "related_entity_id": related_entity_id,
        "related_entity_type": related_entity_type,
        "action_required": action_required,
        "read": False,
    })
    logger.info(f"[NOTIFY][{notification_type.upper()}] {title} (action_required={action_required})")
    return notification


class NotificationFeed:
    """
    The newest unread notifications plus the unread count,
    refreshed by a LatestResponsePoller.
    """

    def __init__(self, client: EntityClient, size: Optional[int] = None,
                 interval_seconds: Optional[float] = None):
        self.client = client
        self.size = size or settings.NOTIFICATION_FEED_SIZE
        self.notifications: list[Notification] = []
        self.unread_count = 0
        self.last_refreshed: Optional[datetime] = None
        self.poller = LatestResponsePoller(
            "notifications",
            fetch=self._fetch,
            apply=self._apply,
            interval_seconds=interval_seconds or settings.NOTIFICATION_POLL_SECONDS,
        )

    async def _fetch(self) -> list[Notification]:
        return await self.client.notifications.list(ordering="-created_date")

    def _apply(self, notifications: list[Notification]):
        unread = [n for n in notifications if not n.read]
        self.unread_count = len(unread)
        self.notifications = unread[:self.size]
        self.last_refreshed = utc_now()

    async def refresh(self) -> bool:
        return await self.poller.poll_once()

    def start(self):
        self.poller.start()

    async def stop(self):
        await self.poller.stop()

    async def mark_read(self, notification_id: str):
        await self.client.notifications.update(notification_id, {"read": True})
        before = len(self.notifications)
        self.notifications = [n for n in self.notifications if n.id != notification_id]
        if len(self.notifications) < before:
            self.unread_count = max(0, self.unread_count - 1)
        logger.info(f"[NOTIFY] {notification_id} marked read")

    async def confirm_reservation(self, reservation_id: str):
        """Confirm a pending reservation and clear the notification that asked for it."""
        reservation = await self.client.reservations.get(reservation_id)
        if reservation.status in TERMINAL_RESERVATION_STATUSES:
            raise ValidationError(
                f"Reservation {reservation_id} is {reservation.status.value} and cannot be confirmed",
                {"status": reservation.status.value},
            )

        vehicle_id = reservation.assigned_vehicle_id
        if vehicle_id:
            checkouts, reservations = await asyncio.gather(
                self.client.checkout_reports.filter({"car_id": vehicle_id}),
                self.client.reservations.filter({"assigned_vehicle_id": vehicle_id}),
            )
            conflicts = find_booking_conflicts(vehicle_id, reservation.pickup_date, reservation.dropoff_date,
                                               checkouts, reservations, exclude_reservation_id=reservation_id)
            if conflicts:
                raise AllocationConflict(
                    f"Vehicle {vehicle_id} is already booked during reservation {reservation_id}",
                    {"vehicle_id": vehicle_id, "conflicting_ids": [c.id for c in conflicts]},
                )

        await self.client.reservations.update(reservation_id, {
            "status": ReservationStatus.CONFIRMED.value,
            "confirmation_date": iso(utc_now()),
        }, if_match=reservation.version)

        if vehicle_id:
            # Overlapping booking confirmed meanwhile
            latest = await self.client.reservations.filter({"assigned_vehicle_id": vehicle_id})
            rivals = find_booking_conflicts(vehicle_id, reservation.pickup_date, reservation.dropoff_date,
                                            [], latest, exclude_reservation_id=reservation_id)
            if rivals:
                await self.client.reservations.update(reservation_id, {
                    "status": ReservationStatus.PENDING_CONFIRMATION.value,
                    "confirmation_date": None,
                })
                raise AllocationConflict(
                    f"Vehicle {vehicle_id} was confirmed concurrently for reservation {rivals[0].id}",
                    {"vehicle_id": vehicle_id, "conflicting_ids": [r.id for r in rivals]},
                )
        logger.info(f"[NOTIFY] Reservation {reservation_id} confirmed")

        related = next((n for n in self.notifications if n.related_entity_id == reservation_id), None)
        if related:
            await self.mark_read(related.id)

    def snapshot(self) -> NotificationFeedOut:
        return NotificationFeedOut(
            unread_count=self.unread_count,
            notifications=self.notifications,
            last_refreshed=iso(self.last_refreshed) if self.last_refreshed else None,
        )
