# fleet_rental/routers/quotes.py
"""
Quotes and quote → reservation conversion.
POST /quotes/{id}/convert without a vehicle_id creates an unallocated reservation;
with one, the vehicle is allocated directly and the reservation confirmed.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fleet_rental.database import get_db
from fleet_rental.dependencies import get_entity_client
from fleet_rental.schemas.booking import ConvertQuoteRequest, QuoteOut, QuoteStatus, WorkflowResult
from fleet_rental.schemas.vehicle import Vehicle
from fleet_rental.services.allocation_service import available_vehicles_for, convert_quote
from fleet_rental.services.entity_client import EntityClient
from fleet_rental.services.quote_service import effective_quote_status, is_quote_convertible
from fleet_rental.utils.dates import utc_now

router = APIRouter()


@router.get("/quotes", response_model=list[QuoteOut], summary="Quotes, newest first")
async def list_quotes(
    status: Optional[QuoteStatus] = None,
    client: EntityClient = Depends(get_entity_client),
):
    """`status` filters on the effective status, so expired-but-stored-as-sent quotes match `expired`."""
    now = utc_now()
    quotes = await client.quotes.list(ordering="-created_date")
    out = [
        QuoteOut(**q.model_dump(), effective_status=effective_quote_status(q, now),
                 convertible=is_quote_convertible(q, now))
        for q in quotes
    ]
    if status:
        out = [q for q in out if q.effective_status == status]
    return out


@router.get("/quotes/{quote_id}/available-vehicles", response_model=list[Vehicle],
            summary="Vehicles that can take this quote")
async def list_available_vehicles(quote_id: str, client: EntityClient = Depends(get_entity_client)):
    quote = await client.quotes.get(quote_id)
    vehicles = await client.cars.list()
    return sorted(available_vehicles_for(quote.vehicle_category, vehicles), key=lambda v: v.fleet_id or "")


@router.post("/quotes/{quote_id}/convert", response_model=WorkflowResult, summary="Convert a sent quote")
async def convert(
    quote_id: str,
    body: ConvertQuoteRequest,
    client: EntityClient = Depends(get_entity_client),
    db: Session = Depends(get_db),
):
    quote = await client.quotes.get(quote_id)
    return await convert_quote(client, quote, vehicle_id=body.vehicle_id, db=db)
