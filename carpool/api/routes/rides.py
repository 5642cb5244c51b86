"""
Ride endpoints
==============

POST   /api/v1/rides                      -- publish a ride offer (driver)
GET    /api/v1/rides                      -- upcoming rides, optional filters
GET    /api/v1/rides/{ride_id}            -- ride detail with seat inventory
DELETE /api/v1/rides/{ride_id}            -- delete own ride (cascades)
POST   /api/v1/rides/{ride_id}/requests   -- request a seat (rider)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from carpool.api.dependencies import get_catalog, get_current_user_id, get_ledger
from carpool.api.middleware import limiter
from carpool.api.schemas import RideCreateRequest, RideRequestResponse, RideResponse
from carpool.config import settings
from carpool.services.catalog import RideCatalog
from carpool.services.ledger import RequestLedger

router = APIRouter(prefix="/rides", tags=["rides"])


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Publish a ride offer",
)
@limiter.limit(settings.rate_limit)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    user_id: str = Depends(get_current_user_id),
    catalog: RideCatalog = Depends(get_catalog),
):
    return await catalog.create_ride(
        user_id,
        body.origin,
        body.destination,
        body.departure_at,
        body.total_seats,
        body.price,
        arrival_at=body.arrival_at,
        payment_method=body.payment_method,
    )


@router.get(
    "",
    response_model=list[RideResponse],
    summary="List upcoming rides",
    description=(
        "Snapshot of rides that have not yet departed, ordered by departure. "
        "``destination`` and ``origin`` are case-insensitive substring filters."
    ),
)
@limiter.limit(settings.rate_limit)
async def list_rides(
    request: Request,
    destination: Optional[str] = Query(None, max_length=255),
    origin: Optional[str] = Query(None, max_length=255),
    driver_id: Optional[str] = Query(None, max_length=128),
    catalog: RideCatalog = Depends(get_catalog),
):
    return await catalog.list_rides(destination, origin=origin, driver_id=driver_id)


@router.get(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Get a ride",
)
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: str,
    catalog: RideCatalog = Depends(get_catalog),
):
    return await catalog.get_ride(ride_id)


@router.delete(
    "/{ride_id}",
    status_code=204,
    summary="Delete a ride",
    description=(
        "Only the driver may delete. All requests on the ride are removed and "
        "riders with pending or accepted requests are notified."
    ),
)
@limiter.limit(settings.rate_limit)
async def delete_ride(
    request: Request,
    ride_id: str,
    user_id: str = Depends(get_current_user_id),
    catalog: RideCatalog = Depends(get_catalog),
):
    await catalog.delete_ride(ride_id, user_id)


@router.post(
    "/{ride_id}/requests",
    status_code=201,
    response_model=RideRequestResponse,
    summary="Request a seat on a ride",
)
@limiter.limit(settings.rate_limit)
async def submit_request(
    request: Request,
    ride_id: str,
    user_id: str = Depends(get_current_user_id),
    ledger: RequestLedger = Depends(get_ledger),
):
    return await ledger.submit_request(user_id, ride_id)
