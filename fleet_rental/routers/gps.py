# fleet_rental/routers/gps.py
from fastapi import APIRouter, Depends

from fleet_rental.dependencies import get_gps_feed
from fleet_rental.schemas.gps import GpsFeedOut
from fleet_rental.services.gps_service import GpsFeed

router = APIRouter()


@router.get("/gps/vehicles", response_model=GpsFeedOut, summary="Last known vehicle positions")
async def get_positions(refresh: bool = False, feed: GpsFeed = Depends(get_gps_feed)):
    if refresh or feed.last_refreshed is None:
        await feed.refresh()
    return feed.snapshot()
