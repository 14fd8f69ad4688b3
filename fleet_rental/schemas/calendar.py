# fleet_rental/schemas/calendar.py
from datetime import date
from enum import Enum
from pydantic import BaseModel
from typing import Optional


class CalendarStatus(str, Enum):
    AVAILABLE = "available"
    ON_HIRE = "on_hire"
    RESERVED = "reserved"
    INACTIVE = "inactive"


class DayStatus(BaseModel):
    status: CalendarStatus
    details: str
    customer_name: Optional[str] = None


class WeekCell(DayStatus):
    day: date
    bookable: bool = False


class WeekRow(BaseModel):
    vehicle_id: str
    fleet_id: Optional[str] = None
    license_plate: Optional[str] = None
    cells: list[WeekCell]


class CategoryGroup(BaseModel):
    category: str
    rows: list[WeekRow]


class WeekView(BaseModel):
    week_start: date
    days: list[date]
    groups: list[CategoryGroup]
    previous_week_start: date
    next_week_start: date


class MonthDay(BaseModel):
    day: date
    in_current_month: bool
    interactive: bool
    busy_count: int
    available_count: int
    week_start: date


class MonthView(BaseModel):
    month: date
    total_vehicles: int
    days: list[MonthDay]
    previous_month: date
    next_month: date
