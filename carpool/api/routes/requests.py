"""
Ride-request endpoints
======================

GET    /api/v1/requests/mine                  -- rider's active requests by ride
GET    /api/v1/requests/incoming              -- driver's pending requests
POST   /api/v1/requests/{request_id}/accept   -- driver accepts (takes a seat)
POST   /api/v1/requests/{request_id}/reject   -- driver rejects
DELETE /api/v1/requests/{request_id}          -- rider cancels a pending request
"""

from fastapi import APIRouter, Depends, Request

from carpool.api.dependencies import get_current_user_id, get_ledger
from carpool.api.middleware import limiter
from carpool.api.schemas import IncomingRequestResponse, RideRequestResponse
from carpool.config import settings
from carpool.services.ledger import RequestLedger

router = APIRouter(prefix="/requests", tags=["requests"])


@router.get(
    "/mine",
    response_model=dict[str, RideRequestResponse],
    summary="Active requests of the caller, keyed by ride id",
)
@limiter.limit(settings.rate_limit)
async def my_requests(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    ledger: RequestLedger = Depends(get_ledger),
):
    return await ledger.list_active_requests_for_rider(user_id)


@router.get(
    "/incoming",
    response_model=list[IncomingRequestResponse],
    summary="Pending requests on the caller's rides",
)
@limiter.limit(settings.rate_limit)
async def incoming_requests(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    ledger: RequestLedger = Depends(get_ledger),
):
    pending = await ledger.list_pending_requests_for_driver(user_id)
    return [
        IncomingRequestResponse(
            **RideRequestResponse.model_validate(r).model_dump(),
            requester_name=requester.display_name,
            requester_image_url=requester.profile_image_url,
        )
        for r, requester in pending
    ]


@router.post(
    "/{request_id}/accept",
    response_model=RideRequestResponse,
    summary="Accept a pending request",
    responses={409: {"description": "Request not pending, or ride is full."}},
)
@limiter.limit(settings.rate_limit)
async def accept_request(
    request: Request,
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    ledger: RequestLedger = Depends(get_ledger),
):
    return await ledger.accept_request(request_id, user_id)


@router.post(
    "/{request_id}/reject",
    response_model=RideRequestResponse,
    summary="Reject a pending request",
)
@limiter.limit(settings.rate_limit)
async def reject_request(
    request: Request,
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    ledger: RequestLedger = Depends(get_ledger),
):
    return await ledger.reject_request(request_id, user_id)


@router.delete(
    "/{request_id}",
    status_code=204,
    summary="Cancel a pending request",
)
@limiter.limit(settings.rate_limit)
async def cancel_request(
    request: Request,
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    ledger: RequestLedger = Depends(get_ledger),
):
    await ledger.cancel_request(request_id, user_id)
