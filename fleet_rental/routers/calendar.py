# fleet_rental/routers/calendar.py
"""
Fleet calendar.
GET /calendar/week  — vehicles × 7 days, grouped by category
GET /calendar/month — per-day busy/available counts for a Monday-first month grid
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from fleet_rental.dependencies import get_entity_client
from fleet_rental.schemas.calendar import MonthView, WeekView
from fleet_rental.services.calendar_service import (
    ALL_CATEGORIES,
    build_month_view,
    build_week_view,
    load_calendar_snapshot,
)
from fleet_rental.services.entity_client import EntityClient

router = APIRouter()


@router.get("/calendar/week", response_model=WeekView, summary="Week grid for every vehicle")
async def get_week(
    start: Optional[date] = None,
    category: str = ALL_CATEGORIES,
    client: EntityClient = Depends(get_entity_client),
):
    """`start` may be any day; the week shown is the one containing it (Monday first)."""
    snapshot = await load_calendar_snapshot(client)
    return build_week_view(start or date.today(), snapshot, category)


@router.get("/calendar/month", response_model=MonthView, summary="Month summary")
async def get_month(
    month: Optional[date] = None,
    category: str = ALL_CATEGORIES,
    client: EntityClient = Depends(get_entity_client),
):
    snapshot = await load_calendar_snapshot(client)
    return build_month_view(month or date.today(), snapshot, category)
