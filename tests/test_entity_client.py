# tests/test_entity_client.py
"""Unit tests for the entity API client, against an in-process httpx transport."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import typing
import httpx
import pytest
from fleet_rental.exceptions import AllocationConflict, NotFoundError, RemoteWriteError
from fleet_rental.services.entity_client import EntityApiError, EntityClient, EntityResource, T


def make_client(handler):
    return EntityClient(base_url="http://entity.test/api", token="secret",
                        transport=httpx.MockTransport(handler))


class TestEntityClient:
    @pytest.mark.asyncio
    async def test_list_reads_paginated_results(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"results": [{"id": 7, "fleet_id": "F-007", "category": "ute"}]})

        async with make_client(handler) as client:
            cars = await client.cars.list(ordering="fleet_id")

        assert seen["url"] == "http://entity.test/api/vehicles/cars/?ordering=fleet_id"
        assert seen["auth"] == "Bearer secret"
        assert cars[0].id == "7"
        assert cars[0].fleet_id == "F-007"

    @pytest.mark.asyncio
    async def test_filter_passes_predicate_as_query(self):
        def handler(request):
            assert request.url.params["assigned_vehicle_id"] == "car-1"
            return httpx.Response(200, json=[
                {"id": "r1", "pickup_date": "2024-03-01", "dropoff_date": "2024-03-02"},
                {"id": "r2", "pickup_date": "2024-03-03", "dropoff_date": "2024-03-04"},
            ])

        async with make_client(handler) as client:
            rows = await client.reservations.filter({"assigned_vehicle_id": "car-1"}, limit=1)

        assert [r.id for r in rows] == ["r1"]

    @pytest.mark.asyncio
    async def test_update_sends_if_match(self):
        def handler(request):
            assert request.method == "PATCH"
            assert request.headers["If-Match"] == "4"
            body = json.loads(request.content)
            return httpx.Response(200, json={"id": "r1", "pickup_date": "2024-03-01",
                                             "dropoff_date": "2024-03-02", **body})

        async with make_client(handler) as client:
            updated = await client.reservations.update("r1", {"status": "confirmed"}, if_match=4)

        assert updated.status.value == "confirmed"

    @pytest.mark.asyncio
    async def test_precondition_failed_is_conflict(self):
        async with make_client(lambda request: httpx.Response(412)) as client:
            with pytest.raises(AllocationConflict):
                await client.reservations.update("r1", {"status": "confirmed"}, if_match=1)

    @pytest.mark.asyncio
    async def test_missing_record_is_not_found(self):
        async with make_client(lambda request: httpx.Response(404, json={"detail": "Not found."})) as client:
            with pytest.raises(NotFoundError):
                await client.quotes.get("nope")

    @pytest.mark.asyncio
    async def test_write_failure_is_remote_write_error(self):
        async with make_client(lambda request: httpx.Response(500, text="boom")) as client:
            with pytest.raises(RemoteWriteError):
                await client.notifications.create({"title": "x"})

    @pytest.mark.asyncio
    async def test_read_failure_is_entity_api_error(self):
        async with make_client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(EntityApiError):
                await client.cars.list()

    @pytest.mark.asyncio
    async def test_network_error_on_write(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(RemoteWriteError):
                await client.reservations.delete("r1")

    @pytest.mark.asyncio
    async def test_delete_with_empty_body(self):
        async with make_client(lambda request: httpx.Response(204)) as client:
            assert await client.reservations.delete("r1") is None

    @pytest.mark.asyncio
    async def test_non_json_write_response_is_remote_write_error(self):
        async with make_client(lambda request: httpx.Response(201, text="<html>ok</html>")) as client:
            with pytest.raises(RemoteWriteError) as exc_info:
                await client.notifications.create({"title": "x"})
        assert exc_info.value.detail == {"status": 201}

    @pytest.mark.asyncio
    async def test_invalid_record_on_read_is_entity_api_error(self):
        async with make_client(lambda request: httpx.Response(200, json={"id": "r1"})) as client:
            with pytest.raises(EntityApiError):
                await client.reservations.get("r1")

    @pytest.mark.asyncio
    async def test_invalid_record_on_create_keeps_record_id(self):
        async with make_client(lambda request: httpx.Response(201, json={"id": "r9"})) as client:
            with pytest.raises(RemoteWriteError) as exc_info:
                await client.reservations.create({"customer_name": "Jane Doe"})
        assert exc_info.value.detail == {"record_id": "r9"}

    @pytest.mark.asyncio
    async def test_invalid_rows_on_list_is_entity_api_error(self):
        async with make_client(lambda request: httpx.Response(200, json=[{"id": "r1"}])) as client:
            with pytest.raises(EntityApiError):
                await client.reservations.list()


class TestEntityResourceAnnotations:
    def test_collection_annotations_resolve(self):
        assert typing.get_type_hints(EntityResource.list)["return"] == list[T]
        assert typing.get_type_hints(EntityResource.filter)["return"] == list[T]
