# tests/test_gps_service.py
"""Unit tests for the GPS tracking feed."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import AsyncMock, MagicMock
from fleet_rental.schemas.gps import ThemeSettings
from fleet_rental.schemas.vehicle import Vehicle
from fleet_rental.services.gps_service import GpsFeed, haversine_km, home_base_from, vehicle_positions


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(-31.95, 115.86, -31.95, 115.86) == 0

    def test_one_degree_of_longitude_at_equator(self):
        assert haversine_km(0, 0, 0, 1) == pytest.approx(111.19, abs=0.01)


class TestHomeBase:
    def test_defaults_without_settings(self):
        assert home_base_from([]) == (-31.9523, 115.8613)

    def test_first_settings_row_wins(self):
        rows = [ThemeSettings(id="1", home_base_latitude=-33.87, home_base_longitude=151.21),
                ThemeSettings(id="2", home_base_latitude=0, home_base_longitude=0)]
        assert home_base_from(rows) == (-33.87, 151.21)


class TestVehiclePositions:
    def test_only_vehicles_with_coordinates_sorted_by_fleet_id(self):
        vehicles = [
            Vehicle(id="b", fleet_id="F-002", gps_latitude=-31.95, gps_longitude=115.86, gps_engine_on=True),
            Vehicle(id="c", fleet_id="F-003"),
            Vehicle(id="a", fleet_id="F-001", gps_latitude=-32.05, gps_longitude=115.75),
        ]
        positions = vehicle_positions(vehicles, -31.9523, 115.8613)

        assert [p.vehicle_id for p in positions] == ["a", "b"]
        assert positions[1].engine_on is True
        assert positions[0].distance_from_home_km > positions[1].distance_from_home_km


class TestGpsFeed:
    @pytest.mark.asyncio
    async def test_refresh_applies_home_base_and_positions(self):
        client = MagicMock()
        client.cars.list = AsyncMock(return_value=[Vehicle(id="a", fleet_id="F-001", gps_latitude=-33.87,
                                                            gps_longitude=151.21)])
        client.theme_settings.list = AsyncMock(return_value=[
            ThemeSettings(id="1", home_base_latitude=-33.87, home_base_longitude=151.21)])
        feed = GpsFeed(client, interval_seconds=60)

        assert await feed.refresh() is True

        snapshot = feed.snapshot()
        assert snapshot.home_base_lat == -33.87
        assert snapshot.vehicles[0].distance_from_home_km == 0
