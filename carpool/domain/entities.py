"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ride requests: ``ensure_transition`` enforces the
  lifecycle (pending -> accepted | rejected).
- ``SeatInventory`` encapsulates the capacity & passenger invariants.
- ``RideOffer`` validates a driver's offer before it reaches the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .enums import REQUEST_TRANSITIONS, PaymentMethod, RequestStatus
from .errors import CapacityError, ConflictError, StateError, ValidationError

UNKNOWN_DISPLAY_NAME = "Unknown"


def as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken as UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ensure_transition(current: RequestStatus, new_status: RequestStatus) -> None:
    """Raise ``StateError`` unless *current* -> *new_status* is legal."""
    allowed = REQUEST_TRANSITIONS.get(RequestStatus(current), set())
    if new_status not in allowed:
        raise StateError(
            f"Cannot transition request from {RequestStatus(current).value} "
            f"to {new_status.value}"
        )


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class RideOffer:
    driver_id: str
    origin: str
    destination: str
    departure_at: datetime
    total_seats: int
    price: int
    arrival_at: Optional[datetime] = None
    payment_method: PaymentMethod | str = PaymentMethod.CASH

    def validated(self) -> "RideOffer":
        """Return a UTC-normalised copy, or raise ``ValidationError``."""
        if self.total_seats <= 0:
            raise ValidationError("total_seats must be greater than zero")
        if self.price < 0:
            raise ValidationError("price cannot be negative")
        if not self.origin.strip() or not self.destination.strip():
            raise ValidationError("origin and destination are required")
        try:
            payment_method = PaymentMethod(self.payment_method)
        except ValueError:
            raise ValidationError(
                f"Unknown payment method {self.payment_method!r}"
            ) from None

        departure = as_utc(self.departure_at)
        arrival = as_utc(self.arrival_at) if self.arrival_at else None
        if arrival is not None and arrival < departure:
            raise ValidationError("arrival_at cannot be before departure_at")

        return RideOffer(
            driver_id=self.driver_id,
            origin=self.origin.strip(),
            destination=self.destination.strip(),
            departure_at=departure,
            total_seats=self.total_seats,
            price=self.price,
            arrival_at=arrival,
            payment_method=payment_method,
        )


@dataclass(frozen=True)
class ProfileSummary:
    """Display data joined onto rides and requests for presentation."""

    user_id: str
    display_name: str = UNKNOWN_DISPLAY_NAME
    profile_image_url: Optional[str] = None

    @classmethod
    def unknown(cls, user_id: str) -> "ProfileSummary":
        return cls(user_id=user_id)


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class SeatInventory:
    driver_id: str
    total_seats: int
    available_seats: int
    passengers: set[str] = field(default_factory=set)

    def check_reserve(self, rider_id: str) -> None:
        if rider_id == self.driver_id or rider_id in self.passengers:
            raise ConflictError(f"Rider {rider_id} is already on this ride")
        if self.available_seats <= 0:
            raise CapacityError("No seats remain on this ride")

    def reserve(self, rider_id: str) -> None:
        self.check_reserve(rider_id)
        self.available_seats -= 1
        self.passengers.add(rider_id)

    def is_consistent(self) -> bool:
        return (
            0 <= self.available_seats <= self.total_seats
            and len(self.passengers) == self.total_seats - self.available_seats
            and self.driver_id not in self.passengers
        )
