# fleet_rental/routers/reservations.py
"""
Reservation allocation and direct bookings from the calendar.
GET  /reservations/unallocated     — pending reservations still waiting for a vehicle
POST /reservations/{id}/allocate   — bind a vehicle and confirm
POST /reservations/booking         — book a vehicle from a calendar cell
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fleet_rental.database import get_db
from fleet_rental.dependencies import get_entity_client
from fleet_rental.schemas.booking import (
    AllocateVehicleRequest,
    BookingCreate,
    Reservation,
    ReservationStatus,
    WorkflowResult,
)
from fleet_rental.services.allocation_service import allocate_reservation, create_calendar_booking
from fleet_rental.services.entity_client import EntityClient

router = APIRouter()


@router.get("/reservations/unallocated", response_model=list[Reservation],
            summary="Pending reservations without a vehicle")
async def list_unallocated(client: EntityClient = Depends(get_entity_client)):
    pending = await client.reservations.filter(
        {"status": ReservationStatus.PENDING_CONFIRMATION.value}, ordering="-created_date"
    )
    return [r for r in pending if not r.assigned_vehicle_id]


@router.post("/reservations/booking", response_model=WorkflowResult, summary="Direct booking from the calendar")
async def create_booking(
    body: BookingCreate,
    client: EntityClient = Depends(get_entity_client),
    db: Session = Depends(get_db),
):
    vehicle = await client.cars.get(body.vehicle_id)
    return await create_calendar_booking(
        client,
        vehicle,
        pickup_date=body.pickup_date,
        dropoff_date=body.dropoff_date,
        customer_name=body.customer_name,
        customer_email=body.customer_email,
        customer_phone=body.customer_phone,
        pickup_location=body.pickup_location,
        dropoff_location=body.dropoff_location,
        notes=body.notes,
        db=db,
    )


@router.post("/reservations/{reservation_id}/allocate", response_model=WorkflowResult,
             summary="Allocate a vehicle to a pending reservation")
async def allocate(
    reservation_id: str,
    body: AllocateVehicleRequest,
    client: EntityClient = Depends(get_entity_client),
    db: Session = Depends(get_db),
):
    reservation = await client.reservations.get(reservation_id)
    return await allocate_reservation(client, reservation, body.vehicle_id, db=db)
