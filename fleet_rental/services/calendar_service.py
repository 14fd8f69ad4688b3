# fleet_rental/services/calendar_service.py
"""
Calendar Grid Builder — week grid (vehicles × 7 days) and month summary.

Both views work on a CalendarSnapshot loaded in one bulk fetch, then call the
Availability Engine per vehicle/day. Weeks always start on Monday.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from fleet_rental.schemas.booking import CheckoutReport, Reservation
from fleet_rental.schemas.calendar import (
    CalendarStatus,
    CategoryGroup,
    MonthDay,
    MonthView,
    WeekCell,
    WeekRow,
    WeekView,
)
from fleet_rental.schemas.vehicle import Location, Vehicle, VehicleType, VehicleWorkflow
from fleet_rental.services.availability_service import busy_vehicle_ids, get_status_for_day
from fleet_rental.services.entity_client import EntityClient
from fleet_rental.utils.dates import add_months, month_bounds, monday_of, sunday_of
from fleet_rental.utils.logger import get_logger

logger = get_logger(__name__)

UNCATEGORIZED = "Uncategorized"
ALL_CATEGORIES = "all"
WEEK_VIEW = "week"
MONTH_VIEW = "month"


@dataclass
class CalendarSnapshot:
    """Everything the calendar needs, loaded once per view load."""
    vehicles: list[Vehicle] = field(default_factory=list)
    vehicle_types: list[VehicleType] = field(default_factory=list)   # active only
    checkouts: list[CheckoutReport] = field(default_factory=list)
    workflows: list[VehicleWorkflow] = field(default_factory=list)
    reservations: list[Reservation] = field(default_factory=list)
    locations: list[Location] = field(default_factory=list)          # active only


async def load_calendar_snapshot(client: EntityClient) -> CalendarSnapshot:
    """Bulk-load every collection concurrently."""
    cars, vehicle_types, checkouts, workflows, reservations, locations = await asyncio.gather(
        client.cars.list(),
        client.vehicle_types.list(),
        client.checkout_reports.list(),
        client.workflows.list(),
        client.reservations.list(),
        client.locations.list(),
    )
    snapshot = CalendarSnapshot(
        vehicles=sorted(cars, key=lambda c: c.fleet_id or ""),
        vehicle_types=[vt for vt in vehicle_types if vt.active],
        checkouts=checkouts,
        workflows=workflows,
        reservations=reservations,
        locations=[loc for loc in locations if loc.active],
    )
    logger.info(
        f"[CALENDAR] Snapshot loaded: {len(snapshot.vehicles)} vehicles, "
        f"{len(snapshot.checkouts)} checkouts, {len(snapshot.reservations)} reservations, "
        f"{len(snapshot.workflows)} workflows"
    )
    return snapshot


def group_vehicles_by_category(
    vehicles: list[Vehicle],
    vehicle_types: list[VehicleType],
    selected_category: str = ALL_CATEGORIES,
) -> dict[str, list[Vehicle]]:
    """
    Filter by category, then group. Categories not matching an active vehicle
    type land in "Uncategorized", which always sorts last.
    """
    active_type_names = {vt.name for vt in vehicle_types if vt.active}

    filtered = (vehicles if selected_category == ALL_CATEGORIES
                else [v for v in vehicles if v.category == selected_category])

    grouped: dict[str, list[Vehicle]] = {}
    for vehicle in filtered:
        category = vehicle.category if vehicle.category in active_type_names else UNCATEGORIZED
        grouped.setdefault(category, []).append(vehicle)

    ordered = sorted(grouped, key=lambda name: (name == UNCATEGORIZED, name))
    return {name: sorted(grouped[name], key=lambda v: v.fleet_id or "") for name in ordered}


def week_days(week_start: date) -> list[date]:
    start = monday_of(week_start)
    return [start + timedelta(days=i) for i in range(7)]


def shift_week(week_start: date, direction: int) -> date:
    """Exactly 7 days forward (direction=1) or back (direction=-1)."""
    return monday_of(week_start) + timedelta(days=7 * direction)


def shift_month(month_date: date, direction: int) -> date:
    return add_months(month_date, direction)


def month_grid(month_date: date) -> list[date]:
    """Monday on/before the 1st through Sunday on/after the last day."""
    first, last = month_bounds(month_date)
    start, end = monday_of(first), sunday_of(last)
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def build_week_view(week_start: date, snapshot: CalendarSnapshot,
                    selected_category: str = ALL_CATEGORIES) -> WeekView:
    days = week_days(week_start)
    grouped = group_vehicles_by_category(snapshot.vehicles, snapshot.vehicle_types, selected_category)

    groups = []
    for category, vehicles in grouped.items():
        rows = []
        for vehicle in vehicles:
            cells = []
            for day in days:
                status = get_status_for_day(vehicle, day, snapshot.checkouts,
                                            snapshot.reservations, snapshot.workflows)
                cells.append(WeekCell(day=day, bookable=status.status == CalendarStatus.AVAILABLE,
                                      **status.model_dump()))
            rows.append(WeekRow(vehicle_id=vehicle.id, fleet_id=vehicle.fleet_id,
                                license_plate=vehicle.license_plate, cells=cells))
        groups.append(CategoryGroup(category=category, rows=rows))

    return WeekView(
        week_start=days[0],
        days=days,
        groups=groups,
        previous_week_start=shift_week(days[0], -1),
        next_week_start=shift_week(days[0], 1),
    )


def build_month_view(month_date: date, snapshot: CalendarSnapshot,
                     selected_category: str = ALL_CATEGORIES) -> MonthView:
    grouped = group_vehicles_by_category(snapshot.vehicles, snapshot.vehicle_types, selected_category)
    filtered_ids = {v.id for vehicles in grouped.values() for v in vehicles}
    total = len(filtered_ids)

    cells = []
    for day in month_grid(month_date):
        busy = len(busy_vehicle_ids(day, filtered_ids, snapshot.checkouts,
                                    snapshot.reservations, snapshot.workflows))
        in_month = day.month == month_date.month and day.year == month_date.year
        cells.append(MonthDay(
            day=day,
            in_current_month=in_month,
            interactive=in_month,
            busy_count=busy,
            available_count=total - busy,
            week_start=monday_of(day),
        ))

    first, _ = month_bounds(month_date)
    return MonthView(
        month=first,
        total_vehicles=total,
        days=cells,
        previous_month=shift_month(first, -1),
        next_month=shift_month(first, 1),
    )


@dataclass
class CalendarState:
    """
    View state shared by the week and month views.
    Clicking a month day hands its week over to the week view.
    """
    view_mode: str = WEEK_VIEW
    week_start: date = field(default_factory=lambda: monday_of(date.today()))
    current_month: date = field(default_factory=date.today)
    selected_category: str = ALL_CATEGORIES

    def __post_init__(self):
        self.week_start = monday_of(self.week_start)

    def set_view(self, mode: str):
        if mode not in (WEEK_VIEW, MONTH_VIEW):
            raise ValueError(f"Unknown calendar view: {mode}")
        self.view_mode = mode

    def navigate(self, direction: int):
        if self.view_mode == WEEK_VIEW:
            self.week_start = shift_week(self.week_start, direction)
        else:
            self.current_month = shift_month(self.current_month, direction)

    def select_month_day(self, day: date, in_current_month: Optional[bool] = None) -> bool:
        """Switch to the week containing `day`. Days outside the visible month are ignored."""
        if in_current_month is None:
            in_current_month = (day.year, day.month) == (self.current_month.year, self.current_month.month)
        if not in_current_month:
            return False
        self.week_start = monday_of(day)
        self.view_mode = WEEK_VIEW
        return True
