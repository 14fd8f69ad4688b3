# tests/test_notification_service.py
"""Unit tests for notification creation and the unread feed."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import AsyncMock, MagicMock
from fleet_rental.exceptions import AllocationConflict, ValidationError
from fleet_rental.schemas.booking import Reservation, ReservationStatus
from fleet_rental.schemas.notification import Notification, NotificationPriority
from fleet_rental.services.notification_service import NotificationFeed, create_notification


def make_notification(i, read=False, related="res-1"):
    return Notification(id=f"n-{i}", title=f"Notification {i}", read=read, related_entity_id=related)


def make_client(notifications=None, reservation=None, vehicle_reservations=None):
    client = MagicMock()
    client.checkout_reports.filter = AsyncMock(return_value=[])
    client.reservations.filter = AsyncMock(return_value=vehicle_reservations or [])
    client.notifications.list = AsyncMock(return_value=notifications or [])
    client.notifications.update = AsyncMock()
    client.notifications.create = AsyncMock(side_effect=lambda fields: Notification(id="n-new", **fields))
    client.reservations.get = AsyncMock(return_value=reservation)
    client.reservations.update = AsyncMock()
    return client


class TestCreateNotification:
    @pytest.mark.asyncio
    async def test_fields_sent_to_entity_api(self):
        client = make_client()

        notification = await create_notification(client, "reservation_pending", "New Direct Booking", "msg",
                                                  NotificationPriority.HIGH, "res-1", action_required=True)

        fields = client.notifications.create.call_args.args[0]
        assert fields["priority"] == "high"
        assert fields["related_entity_type"] == "reservation"
        assert fields["read"] is False
        assert notification.action_required is True


class TestNotificationFeed:
    @pytest.mark.asyncio
    async def test_keeps_ten_newest_unread(self):
        items = [make_notification(i) for i in range(12)] + [make_notification(99, read=True)]
        client = make_client(items)
        feed = NotificationFeed(client, interval_seconds=60)

        assert await feed.refresh() is True

        client.notifications.list.assert_awaited_once_with(ordering="-created_date")
        assert feed.unread_count == 12
        assert len(feed.notifications) == 10
        assert feed.notifications[0].id == "n-0"
        assert feed.snapshot().last_refreshed is not None

    @pytest.mark.asyncio
    async def test_mark_read_removes_locally(self):
        client = make_client([make_notification(1), make_notification(2)])
        feed = NotificationFeed(client, interval_seconds=60)
        await feed.refresh()

        await feed.mark_read("n-1")

        client.notifications.update.assert_awaited_once_with("n-1", {"read": True})
        assert [n.id for n in feed.notifications] == ["n-2"]
        assert feed.unread_count == 1

    @pytest.mark.asyncio
    async def test_confirm_reservation_marks_related_read(self):
        pending = Reservation(id="res-1", pickup_date="2024-03-01", dropoff_date="2024-03-05",
                              status=ReservationStatus.PENDING_CONFIRMATION)
        client = make_client([make_notification(1, related="res-1"), make_notification(2, related="res-2")],
                             reservation=pending)
        feed = NotificationFeed(client, interval_seconds=60)
        await feed.refresh()

        await feed.confirm_reservation("res-1")

        rid, fields = client.reservations.update.call_args.args
        assert rid == "res-1"
        assert fields["status"] == "confirmed"
        assert fields["confirmation_date"].endswith("Z")
        client.notifications.update.assert_awaited_once_with("n-1", {"read": True})

    @pytest.mark.asyncio
    async def test_completed_reservation_cannot_be_confirmed(self):
        done = Reservation(id="res-1", pickup_date="2024-03-01", dropoff_date="2024-03-05",
                           status=ReservationStatus.COMPLETED)
        client = make_client(reservation=done)
        feed = NotificationFeed(client, interval_seconds=60)

        with pytest.raises(ValidationError):
            await feed.confirm_reservation("res-1")
        client.reservations.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirm_rejects_overlapping_confirmed_booking(self):
        pending = Reservation(id="res-2", assigned_vehicle_id="car-1", pickup_date="2024-03-02",
                              dropoff_date="2024-03-03", status=ReservationStatus.PENDING_CONFIRMATION)
        confirmed = Reservation(id="res-1", assigned_vehicle_id="car-1", pickup_date="2024-03-01",
                                dropoff_date="2024-03-04", status=ReservationStatus.CONFIRMED)
        client = make_client(reservation=pending, vehicle_reservations=[pending, confirmed])
        feed = NotificationFeed(client, interval_seconds=60)

        with pytest.raises(AllocationConflict):
            await feed.confirm_reservation("res-2")

        client.reservations.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirm_with_vehicle_sends_version(self):
        pending = Reservation(id="res-2", assigned_vehicle_id="car-1", pickup_date="2024-03-02",
                              dropoff_date="2024-03-03", status=ReservationStatus.PENDING_CONFIRMATION,
                              version=5)
        client = make_client(reservation=pending, vehicle_reservations=[pending])
        feed = NotificationFeed(client, interval_seconds=60)

        await feed.confirm_reservation("res-2")

        client.reservations.update.assert_awaited_once()
        assert client.reservations.update.call_args.kwargs == {"if_match": 5}

    @pytest.mark.asyncio
    async def test_concurrent_confirmation_is_reverted(self):
        pending = Reservation(id="res-2", assigned_vehicle_id="car-1", pickup_date="2024-03-02",
                              dropoff_date="2024-03-03", status=ReservationStatus.PENDING_CONFIRMATION)
        rival = Reservation(id="res-3", assigned_vehicle_id="car-1", pickup_date="2024-03-03",
                            dropoff_date="2024-03-06", status=ReservationStatus.CONFIRMED)
        client = make_client(reservation=pending)
        client.reservations.filter.side_effect = [[pending], [pending, rival]]
        feed = NotificationFeed(client, interval_seconds=60)

        with pytest.raises(AllocationConflict):
            await feed.confirm_reservation("res-2")

        rid, fields = client.reservations.update.call_args_list[-1].args
        assert rid == "res-2"
        assert fields == {"status": "pending_confirmation", "confirmation_date": None}
