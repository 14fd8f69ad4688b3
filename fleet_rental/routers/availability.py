# fleet_rental/routers/availability.py
"""Single vehicle / single day status lookup."""

import asyncio
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from fleet_rental.dependencies import get_entity_client
from fleet_rental.schemas.calendar import DayStatus
from fleet_rental.services.availability_service import get_status_for_day
from fleet_rental.services.entity_client import EntityClient

router = APIRouter()


@router.get("/availability/{vehicle_id}", response_model=DayStatus, summary="Vehicle status on a day")
async def get_availability(
    vehicle_id: str,
    day: Optional[date] = None,
    client: EntityClient = Depends(get_entity_client),
):
    vehicle, checkouts, reservations, workflows = await asyncio.gather(
        client.cars.get(vehicle_id),
        client.checkout_reports.filter({"car_id": vehicle_id}),
        client.reservations.filter({"assigned_vehicle_id": vehicle_id}),
        client.workflows.filter({"car_id": vehicle_id}),
    )
    return get_status_for_day(vehicle, day or date.today(), checkouts, reservations, workflows)
