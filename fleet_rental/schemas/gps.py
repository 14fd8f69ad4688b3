# fleet_rental/schemas/gps.py
from pydantic import BaseModel
from typing import Optional

from fleet_rental.schemas.vehicle import EntityRecord


class ThemeSettings(EntityRecord):
    home_base_latitude: Optional[float] = None
    home_base_longitude: Optional[float] = None


class VehiclePosition(BaseModel):
    vehicle_id: str
    fleet_id: Optional[str] = None
    license_plate: Optional[str] = None
    latitude: float
    longitude: float
    speed: float = 0.0
    heading: Optional[float] = None
    engine_on: bool = False
    last_update: Optional[str] = None
    distance_from_home_km: float


class GpsFeedOut(BaseModel):
    home_base_lat: float
    home_base_lng: float
    vehicles: list[VehiclePosition]
    last_refreshed: Optional[str] = None
