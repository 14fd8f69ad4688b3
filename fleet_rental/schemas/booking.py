# fleet_rental/schemas/booking.py
"""
Booking-side entity records (checkouts, quotes, reservations)
plus the request bodies accepted by the quotes and reservations routers.
"""

from enum import Enum
from pydantic import BaseModel
from typing import Optional

from fleet_rental.schemas.vehicle import EntityRecord


class ReservationStatus(str, Enum):
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    INVOICED = "invoiced"


# Reservations in these states hold their assigned vehicle
BLOCKING_RESERVATION_STATUSES = {ReservationStatus.CONFIRMED, ReservationStatus.IN_PROGRESS}

# The allocation workflow never writes to reservations in these states
TERMINAL_RESERVATION_STATUSES = {
    ReservationStatus.IN_PROGRESS,
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
}


class CheckoutReport(EntityRecord):
    car_id: str
    customer_name: Optional[str] = None
    checkout_date: str
    expected_return_date: str


class Reservation(EntityRecord):
    quote_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    vehicle_category: Optional[str] = None
    pickup_date: str
    dropoff_date: str
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    assigned_vehicle_id: Optional[str] = None
    status: ReservationStatus = ReservationStatus.PENDING_CONFIRMATION
    confirmation_required_by: Optional[str] = None
    confirmation_date: Optional[str] = None
    total_amount: Optional[float] = None
    notes: Optional[str] = None
    special_requirements: Optional[str] = None
    daily_km_allowance: Optional[float] = None
    insurance_option: Optional[str] = None
    version: Optional[int] = None
    created_date: Optional[str] = None


class Quote(EntityRecord):
    quote_number: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    vehicle_category: Optional[str] = None
    pickup_date: Optional[str] = None
    pickup_time: Optional[str] = None
    dropoff_date: Optional[str] = None
    dropoff_time: Optional[str] = None
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    total: Optional[float] = None
    status: QuoteStatus = QuoteStatus.DRAFT
    valid_until: Optional[str] = None
    accepted_date: Optional[str] = None
    notes: Optional[str] = None
    special_requirements: Optional[str] = None
    daily_km_allowance: Optional[float] = None
    insurance_option: Optional[str] = None
    created_date: Optional[str] = None


class QuoteOut(Quote):
    effective_status: QuoteStatus
    convertible: bool


class ConvertQuoteRequest(BaseModel):
    vehicle_id: Optional[str] = None   # None → unallocated reservation


class AllocateVehicleRequest(BaseModel):
    vehicle_id: str


class BookingCreate(BaseModel):
    vehicle_id: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    pickup_date: str
    dropoff_date: Optional[str] = None
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    notes: Optional[str] = None


class WorkflowResult(BaseModel):
    status: str
    reservation_id: str
    assigned_vehicle_id: Optional[str] = None
    reservation_status: ReservationStatus
    notification_id: Optional[str] = None
