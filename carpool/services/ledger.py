"""
Request Ledger
==============

Enforces the ride-request lifecycle and its interaction with seat capacity::

    pending ──accept──▶ accepted     (seat reserved, rider notified)
       │
       ├────reject───▶ rejected      (rider notified)
       │
       └────cancel───▶ (deleted)     (rider only)

``accepted`` and ``rejected`` are terminal.

Concurrency safety
------------------
* Duplicate active requests are stopped by the unique ``active_key`` column,
  so two simultaneous submissions for the same (rider, ride) cannot both be
  inserted.
* Acceptance runs the request status compare-and-set and the seat
  compare-and-set in one transaction.  Losing either race fails immediately
  with ``StateError`` / ``CapacityError`` and rolls the whole unit back.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.domain.entities import ProfileSummary, as_utc, ensure_transition
from carpool.domain.enums import NotificationCategory, RequestStatus
from carpool.domain.errors import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    NotFoundError,
    SelfRequestError,
    StateError,
)
from carpool.infrastructure.models import RideModel, RideRequestModel
from carpool.infrastructure.repositories import RideRequestRepository
from carpool.services.catalog import RideCatalog
from carpool.services.notifications import NotificationEmitter
from carpool.services.profiles import ProfileDirectory

logger = logging.getLogger(__name__)


class RequestLedger:
    def __init__(
        self,
        session: AsyncSession,
        catalog: RideCatalog,
        notifier: NotificationEmitter,
        profiles: Optional[ProfileDirectory] = None,
    ):
        self.session = session
        self.requests = RideRequestRepository(session)
        self.catalog = catalog
        self.notifier = notifier
        self.profiles = profiles if profiles is not None else ProfileDirectory(session)

    # ── Rider operations ──────────────────────────────────────────────

    async def submit_request(self, rider_id: str, ride_id: str) -> RideRequestModel:
        async with self.notifier.atomic():
            ride = await self.catalog.get_ride(ride_id)
            if ride.driver_id == rider_id:
                raise SelfRequestError("Drivers cannot request their own ride")
            if as_utc(ride.departure_at) < datetime.now(timezone.utc):
                raise StateError("Ride has already departed")
            if await self.requests.get_active(rider_id, ride_id) is not None:
                raise ConflictError("An active request for this ride already exists")
            if ride.available_seats <= 0:
                raise CapacityError("No seats remain on this ride")

            try:
                request = await self.requests.create(
                    RideRequestModel(
                        rider_id=rider_id,
                        ride_id=ride.id,
                        driver_id=ride.driver_id,
                        status=RequestStatus.PENDING,
                        active_key=RideRequestModel.make_active_key(ride.id, rider_id),
                    )
                )
            except IntegrityError as exc:
                # Lost the race against a concurrent submission for this pair
                raise ConflictError(
                    "An active request for this ride already exists"
                ) from exc

            rider_name = await self.profiles.display_name(rider_id)
            self.notifier.emit(
                ride.driver_id,
                NotificationCategory.RIDE_REQUEST,
                f"{rider_name} requested to ride with you.",
                sender_id=rider_id,
                ride_id=ride.id,
                request_id=request.id,
            )

        logger.info("Request %s submitted by %s for ride %s", request.id, rider_id, ride_id)
        return request

    async def cancel_request(self, request_id: str, rider_id: str) -> None:
        async with self.notifier.atomic():
            request = await self.get_request(request_id)
            if request.rider_id != rider_id:
                raise AuthorizationError("Only the requester can cancel this request")
            if RequestStatus(request.status) != RequestStatus.PENDING:
                raise StateError(
                    f"Cannot cancel a request that is {RequestStatus(request.status).value}"
                )
            if not await self.requests.delete_pending(request_id):
                raise StateError("Request is no longer pending")
        logger.info("Request %s cancelled by %s", request_id, rider_id)

    async def list_active_requests_for_rider(
        self, rider_id: str
    ) -> dict[str, RideRequestModel]:
        return {r.ride_id: r for r in await self.requests.get_active_for_rider(rider_id)}

    # ── Driver operations ─────────────────────────────────────────────

    async def accept_request(self, request_id: str, driver_id: str) -> RideRequestModel:
        async with self.notifier.atomic():
            request, ride = await self._load_for_driver(request_id, driver_id)
            ensure_transition(request.status, RequestStatus.ACCEPTED)

            now = datetime.now(timezone.utc)
            if not await self.requests.transition(
                request_id, RequestStatus.ACCEPTED, decided_at=now
            ):
                raise StateError("Request is no longer pending")
            await self.catalog.reserve_seat(ride.id, request.rider_id)

            driver_name = await self.profiles.display_name(driver_id)
            self.notifier.emit(
                request.rider_id,
                NotificationCategory.REQUEST_ACCEPTED,
                f"{driver_name} accepted your request.",
                sender_id=driver_id,
                ride_id=ride.id,
                request_id=request.id,
            )

        logger.info("Request %s accepted by %s", request_id, driver_id)
        return await self.get_request(request_id)

    async def reject_request(self, request_id: str, driver_id: str) -> RideRequestModel:
        async with self.notifier.atomic():
            request, ride = await self._load_for_driver(request_id, driver_id)
            ensure_transition(request.status, RequestStatus.REJECTED)

            if not await self.requests.transition(
                request_id,
                RequestStatus.REJECTED,
                decided_at=datetime.now(timezone.utc),
                release_active_key=True,
            ):
                raise StateError("Request is no longer pending")

            driver_name = await self.profiles.display_name(driver_id)
            self.notifier.emit(
                request.rider_id,
                NotificationCategory.REQUEST_REJECTED,
                f"{driver_name} declined your request.",
                sender_id=driver_id,
                ride_id=ride.id,
                request_id=request.id,
            )

        logger.info("Request %s rejected by %s", request_id, driver_id)
        return await self.get_request(request_id)

    async def list_pending_requests_for_driver(
        self, driver_id: str
    ) -> list[tuple[RideRequestModel, ProfileSummary]]:
        pending = await self.requests.get_pending_for_driver(driver_id)
        requesters = await self.profiles.lookup(r.rider_id for r in pending)
        return [(r, requesters[r.rider_id]) for r in pending]

    # ── Shared ────────────────────────────────────────────────────────

    async def get_request(self, request_id: str) -> RideRequestModel:
        request = await self.requests.get_by_id(request_id)
        if request is None:
            raise NotFoundError("Ride request not found")
        return request

    async def _load_for_driver(
        self, request_id: str, driver_id: str
    ) -> tuple[RideRequestModel, RideModel]:
        request = await self.get_request(request_id)
        if request.driver_id != driver_id:
            raise AuthorizationError("Only the ride's driver can decide this request")
        ride = await self.catalog.get_ride(request.ride_id)
        # The ride is the source of truth; never trust the denormalised copy alone
        if ride.driver_id != driver_id:
            raise AuthorizationError("Only the ride's driver can decide this request")
        return request, ride
