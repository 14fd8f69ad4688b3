# tests/test_calendar_service.py
"""Unit tests for the week/month calendar builders."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import date
from unittest.mock import AsyncMock, MagicMock
from fleet_rental.schemas.booking import CheckoutReport, Reservation, ReservationStatus
from fleet_rental.schemas.calendar import CalendarStatus
from fleet_rental.schemas.vehicle import Location, Vehicle, VehicleType
from fleet_rental.services.calendar_service import (
    MONTH_VIEW,
    UNCATEGORIZED,
    WEEK_VIEW,
    CalendarSnapshot,
    CalendarState,
    build_month_view,
    build_week_view,
    group_vehicles_by_category,
    load_calendar_snapshot,
    month_grid,
    shift_week,
)


def make_snapshot():
    vehicles = [
        Vehicle(id="car-2", fleet_id="F-002", category="ute"),
        Vehicle(id="car-1", fleet_id="F-001", category="ute"),
        Vehicle(id="car-3", fleet_id="F-003", category="sedan"),
        Vehicle(id="car-4", fleet_id="F-004", category="bus"),
    ]
    types = [VehicleType(id="t1", name="ute"), VehicleType(id="t2", name="sedan")]
    checkouts = [CheckoutReport(id="co-1", car_id="car-1", customer_name="Alice",
                                checkout_date="2024-03-04", expected_return_date="2024-03-06")]
    reservations = [Reservation(id="res-1", assigned_vehicle_id="car-3", customer_name="Bob",
                                pickup_date="2024-03-06", dropoff_date="2024-03-08",
                                status=ReservationStatus.CONFIRMED)]
    return CalendarSnapshot(vehicles=vehicles, vehicle_types=types, checkouts=checkouts,
                            reservations=reservations)


class TestGrouping:
    def test_unknown_category_goes_to_uncategorized_last(self):
        snap = make_snapshot()
        grouped = group_vehicles_by_category(snap.vehicles, snap.vehicle_types)
        assert list(grouped) == ["sedan", "ute", UNCATEGORIZED]
        assert [v.id for v in grouped["ute"]] == ["car-1", "car-2"]

    def test_category_filter(self):
        snap = make_snapshot()
        grouped = group_vehicles_by_category(snap.vehicles, snap.vehicle_types, "ute")
        assert list(grouped) == ["ute"]


class TestWeekView:
    def test_always_seven_days_from_monday(self):
        view = build_week_view(date(2024, 3, 7), make_snapshot())   # Thursday
        assert view.week_start == date(2024, 3, 4)
        assert len(view.days) == 7
        assert view.days[0].weekday() == 0
        assert all(len(row.cells) == 7 for g in view.groups for row in g.rows)

    def test_navigation_moves_exactly_one_week(self):
        view = build_week_view(date(2024, 3, 4), make_snapshot())
        assert view.previous_week_start == date(2024, 2, 26)
        assert view.next_week_start == date(2024, 3, 11)
        assert shift_week(date(2024, 3, 6), 1) == date(2024, 3, 11)

    def test_cells_carry_status_and_bookable_flag(self):
        view = build_week_view(date(2024, 3, 4), make_snapshot(), "ute")
        row = next(r for r in view.groups[0].rows if r.vehicle_id == "car-1")
        assert row.cells[0].status == CalendarStatus.ON_HIRE
        assert row.cells[2].status == CalendarStatus.ON_HIRE
        assert row.cells[3].status == CalendarStatus.AVAILABLE
        assert row.cells[3].bookable is True
        assert row.cells[0].bookable is False


class TestMonthView:
    def test_grid_runs_monday_to_sunday(self):
        grid = month_grid(date(2024, 3, 15))
        assert grid[0] == date(2024, 2, 26)
        assert grid[-1] == date(2024, 3, 31)
        assert len(grid) % 7 == 0

    def test_counts_busy_and_available(self):
        view = build_month_view(date(2024, 3, 1), make_snapshot())
        assert view.total_vehicles == 4
        by_day = {d.day: d for d in view.days}
        assert by_day[date(2024, 3, 6)].busy_count == 2
        assert by_day[date(2024, 3, 6)].available_count == 2
        assert by_day[date(2024, 3, 20)].busy_count == 0

    def test_days_outside_month_are_not_interactive(self):
        view = build_month_view(date(2024, 3, 1), make_snapshot())
        assert view.days[0].in_current_month is False
        assert view.days[0].interactive is False
        assert view.previous_month == date(2024, 2, 1)
        assert view.next_month == date(2024, 4, 1)


class TestCalendarState:
    def test_month_day_click_switches_to_its_week(self):
        state = CalendarState(view_mode=MONTH_VIEW, week_start=date(2024, 1, 1), current_month=date(2024, 3, 1))
        assert state.select_month_day(date(2024, 3, 14)) is True
        assert state.view_mode == WEEK_VIEW
        assert state.week_start == date(2024, 3, 11)

    def test_click_outside_month_is_ignored(self):
        state = CalendarState(view_mode=MONTH_VIEW, week_start=date(2024, 1, 1), current_month=date(2024, 3, 1))
        assert state.select_month_day(date(2024, 2, 27)) is False
        assert state.view_mode == MONTH_VIEW

    def test_navigate_month(self):
        state = CalendarState(view_mode=MONTH_VIEW, current_month=date(2024, 1, 31))
        state.navigate(1)
        assert state.current_month == date(2024, 2, 29)

    def test_unknown_view_rejected(self):
        with pytest.raises(ValueError):
            CalendarState().set_view("year")


class TestLoadSnapshot:
    @pytest.mark.asyncio
    async def test_filters_inactive_types_and_locations(self):
        client = MagicMock()
        client.cars.list = AsyncMock(return_value=[Vehicle(id="b", fleet_id="F-2"), Vehicle(id="a", fleet_id="F-1")])
        client.vehicle_types.list = AsyncMock(return_value=[VehicleType(id="1", name="ute"),
                                                            VehicleType(id="2", name="old", active=False)])
        client.checkout_reports.list = AsyncMock(return_value=[])
        client.workflows.list = AsyncMock(return_value=[])
        client.reservations.list = AsyncMock(return_value=[])
        client.locations.list = AsyncMock(return_value=[Location(id="l1", name="Perth", active=False)])

        snap = await load_calendar_snapshot(client)

        assert [v.id for v in snap.vehicles] == ["a", "b"]
        assert [t.name for t in snap.vehicle_types] == ["ute"]
        assert snap.locations == []
