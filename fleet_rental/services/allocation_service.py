# fleet_rental/services/allocation_service.py
"""
Allocation Workflow: quote → reservation → vehicle allocation.

Three user actions, each a sequence of entity-API writes run as a saga:
  convert_quote            sent quote → reservation (unallocated or direct) + quote accepted + notification
  allocate_reservation     pending reservation → confirmed with a vehicle + notification
  create_calendar_booking  calendar cell → pending reservation for that vehicle + notification

Every guard (convertibility, dates, vehicle availability, double-booking) runs
before the first write. If a later write fails, completed steps are compensated
in reverse order; a compensation that itself fails surfaces as PartialFailure.
Each action is recorded in the workflow journal when a DB session is given.
"""

from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from fleet_rental.config import settings
from fleet_rental.exceptions import (
    AllocationConflict,
    FleetError,
    NotFoundError,
    PartialFailure,
    QuoteNotConvertible,
    RemoteWriteError,
    ValidationError,
)
from fleet_rental.models.workflow_journal import WorkflowJournal
from fleet_rental.schemas.booking import (
    BLOCKING_RESERVATION_STATUSES,
    CheckoutReport,
    Quote,
    QuoteStatus,
    Reservation,
    ReservationStatus,
    WorkflowResult,
)
from fleet_rental.schemas.notification import NotificationPriority
from fleet_rental.schemas.vehicle import Vehicle, VehicleStatus
from fleet_rental.services.availability_service import find_booking_conflicts, intervals_overlap
from fleet_rental.services.entity_client import EntityClient
from fleet_rental.services.notification_service import create_notification
from fleet_rental.services.quote_service import effective_quote_status, is_quote_convertible, parse_quote_datetime
from fleet_rental.utils.dates import iso, parse_instant, safe_parse_instant, utc_now
from fleet_rental.utils.logger import get_logger

logger = get_logger(__name__)

ACTION_CONVERT_QUOTE = "convert_quote"
ACTION_ALLOCATE_VEHICLE = "allocate_vehicle"
ACTION_CALENDAR_BOOKING = "calendar_booking"


# ── Journal ──────────────────────────────────────────────────────────────────

def _journal_start(db: Optional[Session], action: str, quote_id: Optional[str] = None,
                   reservation_id: Optional[str] = None,
                   vehicle_id: Optional[str] = None) -> Optional[WorkflowJournal]:
    if db is None:
        return None
    entry = WorkflowJournal(action=action, quote_id=quote_id, reservation_id=reservation_id,
                            vehicle_id=vehicle_id, status="started", started_at=datetime.utcnow())
    db.add(entry)
    db.commit()
    return entry


def _journal_finish(db: Optional[Session], entry: Optional[WorkflowJournal], status: str,
                    steps: list[str], reservation_id: Optional[str] = None, error: Optional[str] = None):
    if db is None or entry is None:
        return
    entry.status = status
    entry.steps_applied = ",".join(steps)
    entry.error = error
    entry.finished_at = datetime.utcnow()
    if reservation_id:
        entry.reservation_id = reservation_id
    db.commit()


def find_conversion(db: Optional[Session], quote_id: str,
                    now: Optional[datetime] = None) -> Optional[WorkflowJournal]:
    """
    Latest committed or still-running conversion of this quote, if any.
    A "started" row older than JOURNAL_STALE_MINUTES belongs to a process that died mid-run.
    """
    if db is None:
        return None
    stale_before = (now or datetime.utcnow()) - timedelta(minutes=settings.JOURNAL_STALE_MINUTES)
    return (
        db.query(WorkflowJournal)
        .filter(
            WorkflowJournal.action == ACTION_CONVERT_QUOTE,
            WorkflowJournal.quote_id == quote_id,
            or_(
                WorkflowJournal.status == "committed",
                and_(WorkflowJournal.status == "started", WorkflowJournal.started_at >= stale_before),
            ),
        )
        .order_by(WorkflowJournal.started_at.desc())
        .first()
    )


# ── Saga ─────────────────────────────────────────────────────────────────────

class Saga:
    """
    Runs entity writes in order and remembers how to undo each one.
    On the first failing step, completed steps are compensated newest first.
    """

    def __init__(self, action: str, db: Optional[Session] = None, journal: Optional[WorkflowJournal] = None):
        self.action = action
        self.db = db
        self.journal = journal
        self._applied: list[tuple[str, Optional[Callable[[Any], Awaitable[Any]]], Any]] = []

    @property
    def applied_steps(self) -> list[str]:
        return [name for name, _, _ in self._applied]

    async def step(self, name: str, action: Callable[[], Awaitable[Any]],
                   compensate: Optional[Callable[[Any], Awaitable[Any]]] = None) -> Any:
        try:
            result = await action()
        except FleetError as e:
            await self._rollback(name, e)
        except Exception as e:
            logger.error(f"[SAGA][{self.action}] step '{name}' raised {type(e).__name__}: {e}", exc_info=True)
            wrapped = RemoteWriteError(f"{name} failed: {type(e).__name__}")
            wrapped.__cause__ = e
            await self._rollback(name, wrapped)
        except BaseException:
            # Cancelled mid-step: the row stays "partial" for manual follow-up
            _journal_finish(self.db, self.journal, "partial", self.applied_steps,
                            error=f"{name} interrupted")
            raise
        self._applied.append((name, compensate, result))
        logger.debug(f"[SAGA][{self.action}] step '{name}' applied")
        return result

    async def _rollback(self, failed_step: str, error: FleetError):
        """Undo applied steps newest first, then raise."""
        logger.warning(f"[SAGA][{self.action}] step '{failed_step}' failed: {error.message}; rolling back "
                       f"{len(self._applied)} step(s)")
        still_applied = []
        for name, compensate, result in reversed(self._applied):
            if compensate is None:
                still_applied.append(name)
                continue
            try:
                await compensate(result)
                logger.info(f"[SAGA][{self.action}] compensated '{name}'")
            except Exception as e:
                logger.error(f"[SAGA][{self.action}] compensation of '{name}' failed: {getattr(e, 'message', e)}")
                still_applied.append(name)

        still_applied.reverse()
        if still_applied:
            _journal_finish(self.db, self.journal, "partial", still_applied, error=error.message)
            raise PartialFailure(
                f"{failed_step} failed and the following steps could not be undone: {', '.join(still_applied)}",
                applied=still_applied,
                detail={"failed_step": failed_step, "cause": error.message},
            ) from error

        _journal_finish(self.db, self.journal, "compensated", [], error=error.message)
        if isinstance(error, RemoteWriteError):
            raise RemoteWriteError(f"{failed_step} failed; earlier steps were rolled back",
                                   {"failed_step": failed_step, "cause": error.message}) from error
        raise error

    def commit(self, reservation_id: Optional[str] = None):
        _journal_finish(self.db, self.journal, "committed", self.applied_steps, reservation_id=reservation_id)


# ── Guards ───────────────────────────────────────────────────────────────────

def available_vehicles_for(category: Optional[str], vehicles: list[Vehicle]) -> list[Vehicle]:
    """Vehicles that can take a booking of `category` right now."""
    return [
        v for v in vehicles
        if v.category == category and v.status == VehicleStatus.AVAILABLE and v.active is not False
    ]


def _require_vehicle(vehicle_id: str, category: Optional[str], vehicles: list[Vehicle]) -> Vehicle:
    vehicle = next((v for v in available_vehicles_for(category, vehicles) if v.id == vehicle_id), None)
    if vehicle is None:
        raise NotFoundError(
            f"No available {category} vehicle with id {vehicle_id}",
            {"vehicle_id": vehicle_id, "category": category},
        )
    return vehicle


def _require_window(pickup: datetime, dropoff: datetime):
    if dropoff < pickup:
        raise ValidationError("Dropoff must not be before pickup",
                              {"pickup_date": iso(pickup), "dropoff_date": iso(dropoff)})


async def _load_vehicle_bookings(client: EntityClient, vehicle_id: str,
                                 checkouts: Optional[list[CheckoutReport]],
                                 reservations: Optional[list[Reservation]]):
    if checkouts is None:
        checkouts = await client.checkout_reports.filter({"car_id": vehicle_id})
    if reservations is None:
        reservations = await client.reservations.filter({"assigned_vehicle_id": vehicle_id})
    return checkouts, reservations


def _require_no_conflict(vehicle_id: str, pickup: datetime, dropoff: datetime,
                         checkouts: list[CheckoutReport], reservations: list[Reservation],
                         exclude_reservation_id: Optional[str] = None):
    conflicts = find_booking_conflicts(vehicle_id, pickup, dropoff, checkouts, reservations,
                                       exclude_reservation_id=exclude_reservation_id)
    if conflicts:
        raise AllocationConflict(
            f"Vehicle {vehicle_id} is already booked between {pickup.date()} and {dropoff.date()}",
            {"vehicle_id": vehicle_id, "conflicting_ids": [c.id for c in conflicts]},
        )


async def _verify_exclusive(client: EntityClient, reservation: Reservation):
    """
    Re-read the vehicle's reservations after our write. Any other blocking
    reservation overlapping ours means the vehicle was taken concurrently and our
    write is reverted. Two racing allocations can both lose, never both win.
    """
    others = await client.reservations.filter({"assigned_vehicle_id": reservation.assigned_vehicle_id})
    rivals = [
        r for r in others
        if r.id != reservation.id
        and r.status in BLOCKING_RESERVATION_STATUSES
        and intervals_overlap(r.pickup_date, r.dropoff_date, reservation.pickup_date, reservation.dropoff_date)
    ]
    if rivals:
        raise AllocationConflict(
            f"Vehicle {reservation.assigned_vehicle_id} was allocated concurrently to reservation {rivals[0].id}",
            {"vehicle_id": reservation.assigned_vehicle_id, "conflicting_ids": [r.id for r in rivals]},
        )


def _short_date(value: str) -> str:
    d = parse_instant(value)
    return f"{d:%b} {d.day}, {d.year}"


# ── Quote conversion ─────────────────────────────────────────────────────────

async def convert_quote(
    client: EntityClient,
    quote: Quote,
    vehicle_id: Optional[str] = None,
    vehicles: Optional[list[Vehicle]] = None,
    checkouts: Optional[list[CheckoutReport]] = None,
    reservations: Optional[list[Reservation]] = None,
    db: Optional[Session] = None,
    now: Optional[datetime] = None,
) -> WorkflowResult:
    """
    Convert a sent, unexpired quote into a reservation.
    With `vehicle_id` the reservation is confirmed on that vehicle (direct allocation);
    without it the reservation waits for allocation (pending_confirmation).
    """
    now = now or utc_now()
    direct = vehicle_id is not None

    previous = find_conversion(db, quote.id)
    if previous is not None:
        if previous.status == "started":
            raise AllocationConflict(f"Quote {quote.quote_number} is already being converted",
                                     {"quote_id": quote.id})
        logger.info(f"[ALLOC] Quote {quote.quote_number} already converted → {previous.reservation_id}")
        return WorkflowResult(
            status="already_converted",
            reservation_id=previous.reservation_id,
            assigned_vehicle_id=previous.vehicle_id,
            reservation_status=(ReservationStatus.CONFIRMED if previous.vehicle_id
                                else ReservationStatus.PENDING_CONFIRMATION),
        )

    if not is_quote_convertible(quote, now):
        raise QuoteNotConvertible(
            f"Quote {quote.quote_number} is {effective_quote_status(quote, now).value} and cannot be converted",
            {"quote_id": quote.id, "status": effective_quote_status(quote, now).value},
        )
    if not quote.pickup_date or not quote.dropoff_date:
        raise ValidationError("Quote must have a pickup and dropoff date to be converted.",
                              {"quote_id": quote.id})

    pickup = parse_quote_datetime(quote.pickup_date, quote.pickup_time, settings.DEFAULT_PICKUP_TIME)
    dropoff = parse_quote_datetime(quote.dropoff_date, quote.dropoff_time, settings.DEFAULT_DROPOFF_TIME)
    _require_window(pickup, dropoff)

    if direct:
        if vehicles is None:
            vehicles = await client.cars.list()
        _require_vehicle(vehicle_id, quote.vehicle_category, vehicles)
        checkouts, reservations = await _load_vehicle_bookings(client, vehicle_id, checkouts, reservations)
        _require_no_conflict(vehicle_id, pickup, dropoff, checkouts, reservations)

    reservation_status = ReservationStatus.CONFIRMED if direct else ReservationStatus.PENDING_CONFIRMATION
    reservation_fields = {
        "quote_id": quote.id,
        "customer_name": quote.customer_name,
        "customer_email": quote.customer_email,
        "customer_phone": quote.customer_phone,
        "vehicle_category": quote.vehicle_category,
        "pickup_date": iso(pickup),
        "dropoff_date": iso(dropoff),
        "pickup_location": quote.pickup_location,
        "dropoff_location": quote.dropoff_location,
        "total_amount": quote.total,
        "notes": quote.notes,
        "special_requirements": quote.special_requirements,
        "daily_km_allowance": quote.daily_km_allowance,
        "insurance_option": quote.insurance_option,
        "status": reservation_status.value,
        "assigned_vehicle_id": vehicle_id if direct else None,
        "confirmation_required_by": iso(now + timedelta(hours=settings.CONFIRMATION_WINDOW_HOURS)),
    }

    journal = _journal_start(db, ACTION_CONVERT_QUOTE, quote_id=quote.id, vehicle_id=vehicle_id)
    saga = Saga(ACTION_CONVERT_QUOTE, db, journal)

    reservation = await saga.step(
        "create_reservation",
        lambda: client.reservations.create(reservation_fields),
        compensate=lambda r: client.reservations.delete(r.id),
    )
    if direct:
        await saga.step("verify_allocation", lambda: _verify_exclusive(client, reservation))

    await saga.step(
        "accept_quote",
        lambda: client.quotes.update(quote.id, {"status": QuoteStatus.ACCEPTED.value,
                                                "accepted_date": iso(now)}),
        compensate=lambda _: client.quotes.update(quote.id, {"status": quote.status.value,
                                                             "accepted_date": quote.accepted_date}),
    )

    notification = await saga.step(
        "create_notification",
        lambda: create_notification(
            client,
            notification_type="quote_accepted",
            title="Quote Directly Allocated" if direct else "Quote Converted",
            message=f"Quote {quote.quote_number} for {quote.customer_name} has been converted to a reservation.",
            priority=NotificationPriority.HIGH,
            related_entity_id=reservation.id,
            action_required=not direct,
        ),
    )
    saga.commit(reservation_id=reservation.id)

    logger.info(
        f"[ALLOC] Quote {quote.quote_number} → reservation {reservation.id} "
        f"({reservation_status.value}, vehicle={vehicle_id or 'unallocated'})"
    )
    return WorkflowResult(
        status="converted",
        reservation_id=reservation.id,
        assigned_vehicle_id=vehicle_id if direct else None,
        reservation_status=reservation_status,
        notification_id=notification.id,
    )


# ── Unallocated → confirmed ──────────────────────────────────────────────────

async def allocate_reservation(
    client: EntityClient,
    reservation: Reservation,
    vehicle_id: str,
    vehicles: Optional[list[Vehicle]] = None,
    checkouts: Optional[list[CheckoutReport]] = None,
    reservations: Optional[list[Reservation]] = None,
    db: Optional[Session] = None,
) -> WorkflowResult:
    """Bind an available vehicle to a pending reservation and confirm it."""
    if not vehicle_id:
        raise ValidationError("Please select a vehicle to allocate.", {"reservation_id": reservation.id})
    if reservation.status != ReservationStatus.PENDING_CONFIRMATION or reservation.assigned_vehicle_id:
        raise ValidationError(
            f"Reservation {reservation.id} is {reservation.status.value} and cannot be allocated",
            {"reservation_id": reservation.id, "status": reservation.status.value},
        )

    if vehicles is None:
        vehicles = await client.cars.list()
    _require_vehicle(vehicle_id, reservation.vehicle_category, vehicles)
    checkouts, reservations = await _load_vehicle_bookings(client, vehicle_id, checkouts, reservations)
    _require_no_conflict(vehicle_id, parse_instant(reservation.pickup_date), parse_instant(reservation.dropoff_date),
                         checkouts, reservations, exclude_reservation_id=reservation.id)

    journal = _journal_start(db, ACTION_ALLOCATE_VEHICLE, quote_id=reservation.quote_id,
                             reservation_id=reservation.id, vehicle_id=vehicle_id)
    saga = Saga(ACTION_ALLOCATE_VEHICLE, db, journal)

    updated = await saga.step(
        "assign_vehicle",
        lambda: client.reservations.update(
            reservation.id,
            {"assigned_vehicle_id": vehicle_id, "status": ReservationStatus.CONFIRMED.value},
            if_match=reservation.version,
        ),
        compensate=lambda _: client.reservations.update(
            reservation.id,
            {"assigned_vehicle_id": None, "status": ReservationStatus.PENDING_CONFIRMATION.value},
        ),
    )
    await saga.step("verify_allocation", lambda: _verify_exclusive(client, updated))

    notification = await saga.step(
        "create_notification",
        lambda: create_notification(
            client,
            notification_type="reservation_pending",
            title="Vehicle Allocated to Reservation",
            message=(f"Vehicle has been allocated to {reservation.customer_name}'s reservation. "
                     f"Pickup scheduled for {_short_date(reservation.pickup_date)}."),
            priority=NotificationPriority.NORMAL,
            related_entity_id=reservation.id,
        ),
    )
    saga.commit(reservation_id=reservation.id)

    logger.info(f"[ALLOC] Reservation {reservation.id} confirmed on vehicle {vehicle_id}")
    return WorkflowResult(
        status="allocated",
        reservation_id=reservation.id,
        assigned_vehicle_id=vehicle_id,
        reservation_status=ReservationStatus.CONFIRMED,
        notification_id=notification.id,
    )


# ── Calendar booking ─────────────────────────────────────────────────────────

async def create_calendar_booking(
    client: EntityClient,
    vehicle: Vehicle,
    pickup_date: str,
    dropoff_date: Optional[str],
    customer_name: Optional[str],
    customer_email: Optional[str],
    customer_phone: Optional[str] = None,
    pickup_location: Optional[str] = None,
    dropoff_location: Optional[str] = None,
    notes: Optional[str] = None,
    checkouts: Optional[list[CheckoutReport]] = None,
    reservations: Optional[list[Reservation]] = None,
    db: Optional[Session] = None,
    now: Optional[datetime] = None,
) -> WorkflowResult:
    """Book a vehicle straight from a calendar cell; the booking waits for confirmation."""
    now = now or utc_now()
    missing = [name for name, value in (("customer_name", customer_name),
                                        ("customer_email", customer_email),
                                        ("dropoff_date", dropoff_date)) if not value]
    if missing:
        raise ValidationError("Please fill in customer name, email, and dropoff date.", {"missing": missing})

    pickup = safe_parse_instant(pickup_date)
    dropoff = safe_parse_instant(dropoff_date)
    if pickup is None or dropoff is None:
        raise ValidationError("Invalid pickup or dropoff date",
                              {"pickup_date": pickup_date, "dropoff_date": dropoff_date})
    _require_window(pickup, dropoff)
    if vehicle.active is False:
        raise ValidationError(f"Vehicle {vehicle.fleet_id} is inactive", {"vehicle_id": vehicle.id})

    checkouts, reservations = await _load_vehicle_bookings(client, vehicle.id, checkouts, reservations)
    _require_no_conflict(vehicle.id, pickup, dropoff, checkouts, reservations)

    journal = _journal_start(db, ACTION_CALENDAR_BOOKING, vehicle_id=vehicle.id)
    saga = Saga(ACTION_CALENDAR_BOOKING, db, journal)

    reservation = await saga.step(
        "create_reservation",
        lambda: client.reservations.create({
            "customer_name": customer_name,
            "customer_email": customer_email,
            "customer_phone": customer_phone,
            "vehicle_category": vehicle.category,
            "pickup_date": iso(pickup),
            "dropoff_date": iso(dropoff),
            "pickup_location": pickup_location,
            "dropoff_location": dropoff_location,
            "assigned_vehicle_id": vehicle.id,
            "status": ReservationStatus.PENDING_CONFIRMATION.value,
            "notes": notes,
            "total_amount": 0,
            "quote_id": None,
            "confirmation_required_by": iso(now + timedelta(hours=settings.CONFIRMATION_WINDOW_HOURS)),
        }),
        compensate=lambda r: client.reservations.delete(r.id),
    )

    notification = await saga.step(
        "create_notification",
        lambda: create_notification(
            client,
            notification_type="reservation_pending",
            title="New Direct Booking",
            message=(f"{customer_name} has booked {vehicle.make} {vehicle.model} (Fleet {vehicle.fleet_id}) "
                     f"from {pickup:%b} {pickup.day} to {dropoff:%b} {dropoff.day}."),
            priority=NotificationPriority.HIGH,
            related_entity_id=reservation.id,
            action_required=True,
        ),
    )
    saga.commit(reservation_id=reservation.id)

    logger.info(f"[ALLOC] Calendar booking {reservation.id} for vehicle {vehicle.fleet_id} ({customer_name})")
    return WorkflowResult(
        status="booked",
        reservation_id=reservation.id,
        assigned_vehicle_id=vehicle.id,
        reservation_status=ReservationStatus.PENDING_CONFIRMATION,
        notification_id=notification.id,
    )
