"""
Ride Catalog
============

Owns ride offers: create, list, delete, and the seat reservation used by
request acceptance.

Seat accounting
---------------
``reserve_seat`` takes a seat with a single compare-and-set UPDATE
(``available_seats > 0``) and inserts the passenger row under a unique
``(ride_id, rider_id)`` constraint.  It never commits: it runs inside the
ledger's transaction so the seat, the passenger and the request status move
together or not at all.

Deletion policy
---------------
Deleting a ride cascades.  Every request on the ride is removed, and every
rider holding a pending or accepted request is sent ``ride_cancelled``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.config import settings
from carpool.domain.entities import RideOffer, SeatInventory
from carpool.domain.enums import NotificationCategory, PaymentMethod
from carpool.domain.errors import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    NotFoundError,
)
from carpool.infrastructure.models import RideModel
from carpool.infrastructure.repositories import RideRepository, RideRequestRepository
from carpool.services.notifications import NotificationEmitter

logger = logging.getLogger(__name__)


class RideCatalog:
    def __init__(self, session: AsyncSession, notifier: NotificationEmitter):
        self.session = session
        self.rides = RideRepository(session)
        self.requests = RideRequestRepository(session)
        self.notifier = notifier

    async def create_ride(
        self,
        driver_id: str,
        origin: str,
        destination: str,
        departure_at: datetime,
        total_seats: int,
        price: int,
        *,
        arrival_at: Optional[datetime] = None,
        payment_method: PaymentMethod | str | None = None,
    ) -> RideModel:
        offer = RideOffer(
            driver_id=driver_id,
            origin=origin,
            destination=destination,
            departure_at=departure_at,
            total_seats=total_seats,
            price=price,
            arrival_at=arrival_at,
            payment_method=payment_method or settings.default_payment_method,
        ).validated()

        async with self.notifier.atomic():
            ride = await self.rides.create(
                RideModel(
                    driver_id=offer.driver_id,
                    origin=offer.origin,
                    destination=offer.destination,
                    departure_at=offer.departure_at,
                    arrival_at=offer.arrival_at,
                    price=offer.price,
                    payment_method=offer.payment_method,
                    total_seats=offer.total_seats,
                    available_seats=offer.total_seats,
                    passengers=[],
                )
            )
        logger.info(
            "Ride %s created by %s (%d seats)", ride.id, driver_id, offer.total_seats
        )
        return ride

    async def get_ride(self, ride_id: str) -> RideModel:
        ride = await self.rides.get_by_id(ride_id)
        if ride is None:
            raise NotFoundError("Ride not found")
        return ride

    async def list_rides(
        self,
        destination: str | None = None,
        *,
        origin: str | None = None,
        driver_id: str | None = None,
    ) -> list[RideModel]:
        """Point-in-time snapshot of rides that have not yet departed."""
        return await self.rides.list_upcoming(
            datetime.now(timezone.utc),
            destination=destination,
            origin=origin,
            driver_id=driver_id,
        )

    async def delete_ride(self, ride_id: str, requester_id: str) -> None:
        async with self.notifier.atomic():
            ride = await self.get_ride(ride_id)
            if ride.driver_id != requester_id:
                raise AuthorizationError("Only the driver can delete this ride")

            affected = await self.requests.get_active_for_ride(ride_id)
            for request in affected:
                self.notifier.emit(
                    request.rider_id,
                    NotificationCategory.RIDE_CANCELLED,
                    f"Your ride from {ride.origin} to {ride.destination} "
                    "was cancelled by the driver.",
                    sender_id=ride.driver_id,
                    ride_id=ride.id,
                    request_id=request.id,
                )
            removed = await self.requests.delete_for_ride(ride_id)
            await self.rides.delete(ride)

        logger.info(
            "Ride %s deleted by %s (%d requests removed, %d riders notified)",
            ride_id,
            requester_id,
            removed,
            len(affected),
        )

    async def reserve_seat(self, ride_id: str, rider_id: str) -> None:
        """Take one seat for *rider_id*.  Caller owns the transaction."""
        ride = await self.get_ride(ride_id)
        SeatInventory(
            driver_id=ride.driver_id,
            total_seats=ride.total_seats,
            available_seats=ride.available_seats,
            passengers=set(ride.passenger_ids),
        ).check_reserve(rider_id)

        if not await self.rides.decrement_seat(ride_id):
            raise CapacityError("No seats remain on this ride")
        try:
            await self.rides.add_passenger(ride_id, rider_id)
        except IntegrityError as exc:
            raise ConflictError(f"Rider {rider_id} is already on this ride") from exc
