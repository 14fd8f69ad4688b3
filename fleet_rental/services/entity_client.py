# fleet_rental/services/entity_client.py
"""
Async client for the hosted entity API (Django REST backend).

Every entity type is exposed as an EntityResource with the same surface:
list / filter / get / create / update / delete. Responses are validated into
the pydantic records from fleet_rental.schemas, so services never handle raw dicts.

HTTP failures are translated into the fleet error taxonomy:
  404 → NotFoundError
  412 → AllocationConflict   (conditional update lost the race)
  other failures on writes → RemoteWriteError
  other failures on reads  → EntityApiError
"""

from __future__ import annotations

from typing import Any, Generic, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError as SchemaError

from fleet_rental.config import settings
from fleet_rental.exceptions import (
    AllocationConflict,
    FleetError,
    NotFoundError,
    RemoteWriteError,
)
from fleet_rental.schemas.booking import CheckoutReport, Quote, Reservation
from fleet_rental.schemas.gps import ThemeSettings
from fleet_rental.schemas.notification import Notification
from fleet_rental.schemas.vehicle import Location, Vehicle, VehicleType, VehicleWorkflow
from fleet_rental.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

_WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class EntityApiError(FleetError):
    """Entity API read failed (network or server error)."""

    status_code = 502


class EntityResource(Generic[T]):
    """CRUD operations for one entity endpoint, e.g. /reservations/quotes/."""

    def __init__(self, client: "EntityClient", endpoint: str, model: Type[T]):
        self.client = client
        self.endpoint = endpoint
        self.model = model

    async def list(self, ordering: Optional[str] = None) -> list[T]:
        """All records, optionally sorted server-side ("-created_date" = newest first)."""
        params = {"ordering": ordering} if ordering else None
        return self._parse_many(await self.client.request("GET", self.endpoint, params=params))

    async def filter(self, predicate: dict, ordering: Optional[str] = None,
                     limit: Optional[int] = None) -> list[T]:
        """Records matching every field in `predicate`."""
        params = dict(predicate)
        if ordering:
            params["ordering"] = ordering
        if limit:
            params["limit"] = limit
        records = self._parse_many(await self.client.request("GET", self.endpoint, params=params))
        return records[:limit] if limit else records

    async def get(self, entity_id: str) -> T:
        data = await self.client.request("GET", f"{self.endpoint}{entity_id}/")
        return self._parse_one(data, write=False)

    async def create(self, fields: dict) -> T:
        data = await self.client.request("POST", self.endpoint, json=fields)
        return self._parse_one(data, write=True)

    async def update(self, entity_id: str, fields: dict, if_match: Optional[Any] = None) -> T:
        """
        Partial update. With `if_match`, the write only succeeds if the stored
        record still carries that version; otherwise AllocationConflict is raised.
        """
        headers = {"If-Match": str(if_match)} if if_match is not None else None
        data = await self.client.request("PATCH", f"{self.endpoint}{entity_id}/",
                                         json=fields, headers=headers)
        return self._parse_one(data, write=True)

    async def delete(self, entity_id: str) -> None:
        await self.client.request("DELETE", f"{self.endpoint}{entity_id}/")

    def _parse_one(self, data: Any, write: bool) -> T:
        try:
            return self.model.model_validate(data)
        except SchemaError as e:
            # The write may have landed; keep whatever id came back so it can be traced
            record_id = data.get("id") if isinstance(data, dict) else None
            logger.error(f"[ENTITY] {self.endpoint} returned an invalid {self.model.__name__}: {e}")
            error_cls = RemoteWriteError if write else EntityApiError
            raise error_cls(f"Entity API returned an invalid {self.model.__name__} from {self.endpoint}",
                            {"record_id": record_id}) from e

    def _parse_many(self, data: Any) -> list[T]:
        # Paginated DRF responses wrap rows in "results"
        if isinstance(data, dict):
            data = data.get("results", [])
        try:
            return [self.model.model_validate(row) for row in data or []]
        except (SchemaError, TypeError) as e:
            logger.error(f"[ENTITY] {self.endpoint} returned invalid {self.model.__name__} rows: {e}")
            raise EntityApiError(f"Entity API returned invalid {self.model.__name__} rows from {self.endpoint}") from e


class EntityClient:
    """
    One shared httpx.AsyncClient for all entity endpoints.
    Use as an async context manager, or call aclose() on shutdown.
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        headers = {"Content-Type": "application/json"}
        token = token if token is not None else settings.ENTITY_API_TOKEN
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._http = httpx.AsyncClient(
            base_url=(base_url or settings.ENTITY_API_BASE_URL).rstrip("/"),
            timeout=timeout or settings.ENTITY_API_TIMEOUT,
            headers=headers,
            transport=transport,
        )

        self.cars = EntityResource(self, "/vehicles/cars/", Vehicle)
        self.vehicle_types = EntityResource(self, "/vehicles/vehicle-types/", VehicleType)
        self.locations = EntityResource(self, "/vehicles/locations/", Location)
        self.workflows = EntityResource(self, "/vehicles/workflows/", VehicleWorkflow)
        self.quotes = EntityResource(self, "/reservations/quotes/", Quote)
        self.reservations = EntityResource(self, "/reservations/reservations/", Reservation)
        self.checkout_reports = EntityResource(self, "/reservations/checkout-reports/", CheckoutReport)
        self.notifications = EntityResource(self, "/system/notifications/", Notification)
        self.theme_settings = EntityResource(self, "/system/theme-settings/", ThemeSettings)

    async def request(self, method: str, path: str, params: Optional[dict] = None,
                      json: Optional[dict] = None, headers: Optional[dict] = None) -> Any:
        is_write = method.upper() in _WRITE_METHODS
        try:
            response = await self._http.request(method, path, params=params, json=json, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            body = _error_body(e.response)
            logger.warning(f"[ENTITY] {method} {path} → HTTP {status}: {body}")
            if status == 404:
                raise NotFoundError(f"Resource not found: {path}", {"status": status}) from e
            if status == 412:
                raise AllocationConflict(f"Record changed since it was read: {path}",
                                         {"status": status}) from e
            error_cls = RemoteWriteError if is_write else EntityApiError
            raise error_cls(f"Entity API {method} {path} failed with HTTP {status}",
                            {"status": status, "body": body}) from e
        except httpx.RequestError as e:
            logger.error(f"[ENTITY] {method} {path} — network error: {e}")
            error_cls = RemoteWriteError if is_write else EntityApiError
            raise error_cls(f"Entity API unreachable during {method} {path}: {e}") from e

        logger.debug(f"[ENTITY] {method} {path} → {response.status_code}")
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"[ENTITY] {method} {path} returned a non-JSON body: {response.text[:200]}")
            error_cls = RemoteWriteError if is_write else EntityApiError
            raise error_cls(f"Entity API {method} {path} returned a non-JSON body",
                            {"status": response.status_code}) from e

    async def health(self) -> Any:
        return await self.request("GET", "/health/")

    async def aclose(self):
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()


def _error_body(response: httpx.Response) -> Any:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict):
        return data.get("message") or data.get("detail") or data
    return data
