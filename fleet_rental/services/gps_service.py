# fleet_rental/services/gps_service.py
"""
GPS tracking feed: last known position of every car that reports coordinates,
with its great-circle distance from the home base.
"""

import asyncio
import math
from datetime import datetime
from typing import Optional

from fleet_rental.config import settings
from fleet_rental.schemas.gps import GpsFeedOut, ThemeSettings, VehiclePosition
from fleet_rental.schemas.vehicle import Vehicle
from fleet_rental.services.entity_client import EntityClient
from fleet_rental.services.poller import LatestResponsePoller
from fleet_rental.utils.dates import iso, utc_now
from fleet_rental.utils.logger import get_logger

logger = get_logger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def home_base_from(theme_settings: list[ThemeSettings]) -> tuple[float, float]:
    """First settings row wins; missing coordinates fall back to the configured default."""
    first = theme_settings[0] if theme_settings else None
    lat = first.home_base_latitude if first and first.home_base_latitude is not None else settings.HOME_BASE_LAT
    lng = first.home_base_longitude if first and first.home_base_longitude is not None else settings.HOME_BASE_LNG
    return lat, lng


def vehicle_positions(vehicles: list[Vehicle], home_lat: float, home_lng: float) -> list[VehiclePosition]:
    positions = [
        VehiclePosition(
            vehicle_id=v.id,
            fleet_id=v.fleet_id,
            license_plate=v.license_plate,
            latitude=v.gps_latitude,
            longitude=v.gps_longitude,
            speed=v.gps_speed or 0.0,
            heading=v.gps_heading,
            engine_on=bool(v.gps_engine_on),
            last_update=v.gps_last_update,
            distance_from_home_km=round(haversine_km(home_lat, home_lng, v.gps_latitude, v.gps_longitude), 2),
        )
        for v in vehicles
        if v.gps_latitude is not None and v.gps_longitude is not None
    ]
    return sorted(positions, key=lambda p: p.fleet_id or "")


class GpsFeed:
    def __init__(self, client: EntityClient, interval_seconds: Optional[float] = None):
        self.client = client
        self.home_lat = settings.HOME_BASE_LAT
        self.home_lng = settings.HOME_BASE_LNG
        self.positions: list[VehiclePosition] = []
        self.last_refreshed: Optional[datetime] = None
        self.poller = LatestResponsePoller(
            "gps",
            fetch=self._fetch,
            apply=self._apply,
            interval_seconds=interval_seconds or settings.GPS_POLL_SECONDS,
        )

    async def _fetch(self) -> tuple[list[Vehicle], list[ThemeSettings]]:
        cars, theme = await asyncio.gather(self.client.cars.list(), self.client.theme_settings.list())
        return cars, theme

    def _apply(self, result: tuple[list[Vehicle], list[ThemeSettings]]):
        cars, theme = result
        self.home_lat, self.home_lng = home_base_from(theme)
        self.positions = vehicle_positions(cars, self.home_lat, self.home_lng)
        self.last_refreshed = utc_now()
        logger.debug(f"[GPS] {len(self.positions)} vehicles with a position")

    async def refresh(self) -> bool:
        return await self.poller.poll_once()

    def start(self):
        self.poller.start()

    async def stop(self):
        await self.poller.stop()

    def snapshot(self) -> GpsFeedOut:
        return GpsFeedOut(
            home_base_lat=self.home_lat,
            home_base_lng=self.home_lng,
            vehicles=self.positions,
            last_refreshed=iso(self.last_refreshed) if self.last_refreshed else None,
        )
