"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``profiles``         -- authoritative profile store (onboarding data)
* ``rides``            -- ride offers with seat inventory
* ``ride_passengers``  -- accepted riders per ride
* ``ride_requests``    -- rider asks to join a ride
* ``notifications``    -- per-recipient inbox records

Indexes
-------
* **Unique** on ``ride_requests.active_key`` (``<ride_id>:<rider_id>`` while
  the request is pending or accepted, NULL once rejected) so two concurrent
  submissions for the same pair cannot both be inserted.
* **Unique** on ``(ride_id, rider_id)`` in ``ride_passengers``.
* **B-Tree** on driver / rider / recipient / status columns used by the
  ledger and inbox queries.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base
from carpool.domain.enums import (
    NotificationCategory,
    PaymentMethod,
    RequestStatus,
    VerificationStatus,
)


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    # Persist the lowercase values rather than the member names
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


class ProfileModel(Base):
    __tablename__ = "profiles"

    user_id = Column(String(128), primary_key=True)
    full_name = Column(String(120), nullable=False)
    phone_number = Column(String(32), nullable=True)
    is_driver = Column(Boolean, default=False, nullable=False)
    is_rider = Column(Boolean, default=True, nullable=False)
    driver_license = Column(String(64), nullable=True)
    profile_image_url = Column(String(512), nullable=True)
    license_image_url = Column(String(512), nullable=True)
    status = Column(
        _enum(VerificationStatus, "verificationstatus"),
        default=VerificationStatus.PENDING,
        nullable=False,
    )
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(String(36), primary_key=True, default=_uuid)
    driver_id = Column(String(128), nullable=False)
    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    departure_at = Column(DateTime(timezone=True), nullable=False)
    arrival_at = Column(DateTime(timezone=True), nullable=True)
    price = Column(Integer, nullable=False)
    payment_method = Column(
        _enum(PaymentMethod, "paymentmethod"),
        default=PaymentMethod.CASH,
        nullable=False,
    )
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    passengers = relationship(
        "RidePassengerModel",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="RidePassengerModel.id",
    )

    __table_args__ = (
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_departure", "departure_at"),
        CheckConstraint(
            "available_seats >= 0 AND available_seats <= total_seats",
            name="ck_rides_seat_bounds",
        ),
        CheckConstraint("price >= 0", name="ck_rides_price_non_negative"),
    )

    @property
    def passenger_ids(self) -> list[str]:
        return [p.rider_id for p in self.passengers]


class RidePassengerModel(Base):
    __tablename__ = "ride_passengers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(
        String(36), ForeignKey("rides.id", ondelete="CASCADE"), nullable=False
    )
    rider_id = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("ride_id", "rider_id", name="uq_ride_passenger"),
    )


class RideRequestModel(Base):
    __tablename__ = "ride_requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    rider_id = Column(String(128), nullable=False)
    ride_id = Column(
        String(36), ForeignKey("rides.id", ondelete="CASCADE"), nullable=False
    )
    # Denormalised from rides.driver_id for the driver's incoming-request query
    driver_id = Column(String(128), nullable=False)
    status = Column(
        _enum(RequestStatus, "requeststatus"),
        default=RequestStatus.PENDING,
        nullable=False,
    )
    active_key = Column(String(200), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    decided_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_ride_requests_rider", "rider_id"),
        Index("idx_ride_requests_driver_status", "driver_id", "status"),
        Index("idx_ride_requests_ride", "ride_id"),
    )

    @staticmethod
    def make_active_key(ride_id: str, rider_id: str) -> str:
        return f"{ride_id}:{rider_id}"


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    recipient_id = Column(String(128), nullable=False)
    sender_id = Column(String(128), nullable=True)
    category = Column(
        _enum(NotificationCategory, "notificationcategory"), nullable=False
    )
    context = Column(String(500), nullable=False)
    ride_id = Column(String(36), nullable=True)
    request_id = Column(String(36), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("idx_notifications_recipient", "recipient_id", "is_read"),
    )
