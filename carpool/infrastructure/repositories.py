"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  None of them commit: transaction boundaries
belong to the service layer.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    NotificationModel,
    ProfileModel,
    RideModel,
    RidePassengerModel,
    RideRequestModel,
)
from carpool.domain.enums import ACTIVE_STATUSES, RequestStatus


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(self, ride_id: str) -> Optional[RideModel]:
        # populate_existing: seat counts change through UPDATE statements
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.id == ride_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_upcoming(
        self,
        now: datetime,
        *,
        destination: str | None = None,
        origin: str | None = None,
        driver_id: str | None = None,
    ) -> list[RideModel]:
        query = select(RideModel).where(RideModel.departure_at >= now)
        if destination:
            query = query.where(
                func.lower(RideModel.destination).contains(
                    destination.lower(), autoescape=True
                )
            )
        if origin:
            query = query.where(
                func.lower(RideModel.origin).contains(origin.lower(), autoescape=True)
            )
        if driver_id:
            query = query.where(RideModel.driver_id == driver_id)
        result = await self.session.execute(
            query.order_by(RideModel.departure_at)
        )
        return list(result.scalars().all())

    async def decrement_seat(self, ride_id: str) -> bool:
        """Compare-and-set: take one seat only if one remains."""
        result = await self.session.execute(
            update(RideModel)
            .where(RideModel.id == ride_id, RideModel.available_seats > 0)
            .values(available_seats=RideModel.available_seats - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def add_passenger(self, ride_id: str, rider_id: str) -> None:
        self.session.add(RidePassengerModel(ride_id=ride_id, rider_id=rider_id))
        await self.session.flush()

    async def has_passenger(self, ride_id: str, rider_id: str) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(RidePassengerModel)
            .where(
                RidePassengerModel.ride_id == ride_id,
                RidePassengerModel.rider_id == rider_id,
            )
        )
        return (result.scalar() or 0) > 0

    async def delete(self, ride: RideModel) -> None:
        await self.session.delete(ride)
        await self.session.flush()


class RideRequestRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, request: RideRequestModel) -> RideRequestModel:
        self.session.add(request)
        await self.session.flush()
        return request

    async def get_by_id(self, request_id: str) -> Optional[RideRequestModel]:
        result = await self.session.execute(
            select(RideRequestModel)
            .where(RideRequestModel.id == request_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_active(
        self, rider_id: str, ride_id: str
    ) -> Optional[RideRequestModel]:
        result = await self.session.execute(
            select(RideRequestModel).where(
                RideRequestModel.active_key
                == RideRequestModel.make_active_key(ride_id, rider_id)
            )
        )
        return result.scalar_one_or_none()

    async def get_active_for_rider(self, rider_id: str) -> list[RideRequestModel]:
        result = await self.session.execute(
            select(RideRequestModel)
            .where(
                RideRequestModel.rider_id == rider_id,
                RideRequestModel.status.in_(ACTIVE_STATUSES),
            )
            .order_by(RideRequestModel.created_at)
        )
        return list(result.scalars().all())

    async def get_pending_for_driver(self, driver_id: str) -> list[RideRequestModel]:
        result = await self.session.execute(
            select(RideRequestModel)
            .where(
                RideRequestModel.driver_id == driver_id,
                RideRequestModel.status == RequestStatus.PENDING,
            )
            .order_by(RideRequestModel.created_at)
        )
        return list(result.scalars().all())

    async def get_active_for_ride(self, ride_id: str) -> list[RideRequestModel]:
        result = await self.session.execute(
            select(RideRequestModel).where(
                RideRequestModel.ride_id == ride_id,
                RideRequestModel.status.in_(ACTIVE_STATUSES),
            )
        )
        return list(result.scalars().all())

    async def transition(
        self,
        request_id: str,
        new_status: RequestStatus,
        *,
        decided_at: datetime,
        release_active_key: bool = False,
    ) -> bool:
        """Compare-and-set from ``pending``.  False if someone got there first."""
        values: dict = {"status": new_status, "decided_at": decided_at}
        if release_active_key:
            values["active_key"] = None
        result = await self.session.execute(
            update(RideRequestModel)
            .where(
                RideRequestModel.id == request_id,
                RideRequestModel.status == RequestStatus.PENDING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete_pending(self, request_id: str) -> bool:
        result = await self.session.execute(
            delete(RideRequestModel)
            .where(
                RideRequestModel.id == request_id,
                RideRequestModel.status == RequestStatus.PENDING,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete_for_ride(self, ride_id: str) -> int:
        result = await self.session.execute(
            delete(RideRequestModel)
            .where(RideRequestModel.ride_id == ride_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, notification: NotificationModel) -> None:
        self.session.add(notification)

    async def get_by_id(self, notification_id: str) -> Optional[NotificationModel]:
        return await self.session.get(NotificationModel, notification_id)

    async def list_for_recipient(
        self, recipient_id: str, unread_only: bool = False
    ) -> list[NotificationModel]:
        query = select(NotificationModel).where(
            NotificationModel.recipient_id == recipient_id
        )
        if unread_only:
            query = query.where(NotificationModel.is_read.is_(False))
        result = await self.session.execute(
            query.order_by(NotificationModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def count_unread(self, recipient_id: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(NotificationModel)
            .where(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.is_read.is_(False),
            )
        )
        return result.scalar() or 0


class ProfileRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str) -> Optional[ProfileModel]:
        return await self.session.get(ProfileModel, user_id)

    async def get_many(self, user_ids: Iterable[str]) -> list[ProfileModel]:
        ids = list(set(user_ids))
        if not ids:
            return []
        result = await self.session.execute(
            select(ProfileModel)
            .where(ProfileModel.user_id.in_(ids))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def save(self, profile: ProfileModel) -> ProfileModel:
        self.session.add(profile)
        await self.session.flush()
        return profile
