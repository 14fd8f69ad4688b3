# fleet_rental/services/availability_service.py
"""
Availability Engine — occupancy status of one vehicle on one day.

Pure functions over collections the caller has already loaded in bulk.
Called once per vehicle × visible day, so nothing here may touch the network.

Precedence (first match wins):
  1. vehicle.active is False               → inactive
  2. checkout covering the day             → on_hire   (customer from report)
  3. confirmed/in-progress reservation     → reserved  (customer from reservation)
  4. workflow in progress (any stage)      → on_hire   ("In Process")
  5. vehicle.status == available           → available
  6. anything else                         → inactive  (raw status in details)
"""

from datetime import date, datetime
from typing import Iterable, Optional, Union

from fleet_rental.schemas.booking import (
    BLOCKING_RESERVATION_STATUSES,
    CheckoutReport,
    Reservation,
)
from fleet_rental.schemas.calendar import CalendarStatus, DayStatus
from fleet_rental.schemas.vehicle import Vehicle, VehicleStatus, VehicleWorkflow, WorkflowStatus
from fleet_rental.utils.dates import DateLike, midday, to_day

IN_PROCESS = "In Process"


def interval_contains(start: DateLike, end: DateLike, day: Union[date, datetime]) -> bool:
    """Inclusive on both bounds, compared as calendar days."""
    target = to_day(day)
    return to_day(start) <= target <= to_day(end)


def intervals_overlap(start_a: DateLike, end_a: DateLike, start_b: DateLike, end_b: DateLike) -> bool:
    return to_day(start_a) <= to_day(end_b) and to_day(start_b) <= to_day(end_a)


def _checkout_for(vehicle_id: str, day: date, checkouts: Iterable[CheckoutReport]) -> Optional[CheckoutReport]:
    return next(
        (c for c in checkouts
         if c.car_id == vehicle_id and interval_contains(c.checkout_date, c.expected_return_date, day)),
        None,
    )


def _reservation_for(vehicle_id: str, day: date, reservations: Iterable[Reservation]) -> Optional[Reservation]:
    return next(
        (r for r in reservations
         if r.assigned_vehicle_id == vehicle_id
         and r.status in BLOCKING_RESERVATION_STATUSES
         and interval_contains(r.pickup_date, r.dropoff_date, day)),
        None,
    )


def _active_workflow_for(vehicle_id: str, workflows: Iterable[VehicleWorkflow]) -> Optional[VehicleWorkflow]:
    return next(
        (w for w in workflows
         if w.car_id == vehicle_id and w.workflow_status == WorkflowStatus.IN_PROGRESS),
        None,
    )


def get_status_for_day(
    vehicle: Vehicle,
    day: Union[date, datetime],
    checkouts: list[CheckoutReport],
    reservations: list[Reservation],
    workflows: list[VehicleWorkflow],
) -> DayStatus:
    """Status of `vehicle` on `day`. Exactly one of available / on_hire / reserved / inactive."""
    day_to_check = midday(to_day(day))

    if vehicle.active is False:
        return DayStatus(status=CalendarStatus.INACTIVE, details="Vehicle is inactive")

    checkout = _checkout_for(vehicle.id, day_to_check, checkouts)
    if checkout:
        customer = checkout.customer_name or "Customer"
        return DayStatus(status=CalendarStatus.ON_HIRE, details=f"On Hire: {customer}",
                         customer_name=customer)

    reservation = _reservation_for(vehicle.id, day_to_check, reservations)
    if reservation:
        return DayStatus(status=CalendarStatus.RESERVED,
                         details=f"Reserved for: {reservation.customer_name}",
                         customer_name=reservation.customer_name)

    workflow = _active_workflow_for(vehicle.id, workflows)
    if workflow:
        stage = workflow.current_stage.value.replace("_", " ") if workflow.current_stage else "Unknown"
        return DayStatus(status=CalendarStatus.ON_HIRE, details=f"Vehicle in process ({stage})",
                         customer_name=IN_PROCESS)

    if vehicle.status == VehicleStatus.AVAILABLE:
        return DayStatus(status=CalendarStatus.AVAILABLE, details="Click to create a new booking")

    return DayStatus(status=CalendarStatus.INACTIVE,
                     details=f"Status: {vehicle.status.value.replace('_', ' ')}")


def busy_vehicle_ids(
    day: date,
    vehicle_ids: set[str],
    checkouts: list[CheckoutReport],
    reservations: list[Reservation],
    workflows: list[VehicleWorkflow],
) -> set[str]:
    """
    Distinct vehicles (restricted to `vehicle_ids`) occupied on `day`:
    an overlapping checkout or reservation interval, or an in-progress workflow.
    """
    busy = set()
    for c in checkouts:
        if c.car_id in vehicle_ids and interval_contains(c.checkout_date, c.expected_return_date, day):
            busy.add(c.car_id)
    for r in reservations:
        if r.assigned_vehicle_id in vehicle_ids and interval_contains(r.pickup_date, r.dropoff_date, day):
            busy.add(r.assigned_vehicle_id)
    for w in workflows:
        if w.car_id in vehicle_ids and w.workflow_status == WorkflowStatus.IN_PROGRESS:
            busy.add(w.car_id)
    return busy


def find_booking_conflicts(
    vehicle_id: str,
    start: DateLike,
    end: DateLike,
    checkouts: list[CheckoutReport],
    reservations: list[Reservation],
    exclude_reservation_id: Optional[str] = None,
) -> list[Union[CheckoutReport, Reservation]]:
    """Checkouts and confirmed/in-progress reservations of `vehicle_id` overlapping [start, end]."""
    conflicts: list[Union[CheckoutReport, Reservation]] = [
        c for c in checkouts
        if c.car_id == vehicle_id and intervals_overlap(c.checkout_date, c.expected_return_date, start, end)
    ]
    conflicts.extend(
        r for r in reservations
        if r.assigned_vehicle_id == vehicle_id
        and r.id != exclude_reservation_id
        and r.status in BLOCKING_RESERVATION_STATUSES
        and intervals_overlap(r.pickup_date, r.dropoff_date, start, end)
    )
    return conflicts
