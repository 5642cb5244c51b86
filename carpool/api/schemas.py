"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from carpool.domain.enums import (
    NotificationCategory,
    PaymentMethod,
    RequestStatus,
    VerificationStatus,
)


# ── Requests ──────────────────────────────────────────────────────────


class RideCreateRequest(BaseModel):
    origin: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    departure_at: datetime
    arrival_at: Optional[datetime] = None
    total_seats: int = Field(..., description="Seats offered; must be positive.")
    price: int = Field(..., description="Fare in minor currency units.")
    payment_method: Optional[PaymentMethod] = None


class ProfileUpdateRequest(BaseModel):
    full_name: str = Field(..., max_length=120)
    phone_number: Optional[str] = Field(None, max_length=32)
    is_driver: bool = False
    is_rider: bool = True
    driver_license: Optional[str] = Field(None, max_length=64)
    profile_image_url: Optional[str] = Field(None, max_length=512)
    license_image_url: Optional[str] = Field(None, max_length=512)


# ── Responses ─────────────────────────────────────────────────────────


class RideResponse(BaseModel):
    id: str
    driver_id: str
    origin: str
    destination: str
    departure_at: datetime
    arrival_at: Optional[datetime] = None
    price: int
    payment_method: PaymentMethod
    total_seats: int
    available_seats: int
    passenger_ids: list[str] = []
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RideRequestResponse(BaseModel):
    id: str
    rider_id: str
    ride_id: str
    driver_id: str
    status: RequestStatus
    created_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class IncomingRequestResponse(RideRequestResponse):
    requester_name: str
    requester_image_url: Optional[str] = None


class NotificationResponse(BaseModel):
    id: str
    recipient_id: str
    sender_id: Optional[str] = None
    category: NotificationCategory
    context: str
    ride_id: Optional[str] = None
    request_id: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class InboxResponse(BaseModel):
    unread_count: int
    notifications: list[NotificationResponse] = []


class ProfileResponse(BaseModel):
    user_id: str
    full_name: str
    phone_number: Optional[str] = None
    is_driver: bool
    is_rider: bool
    driver_license: Optional[str] = None
    profile_image_url: Optional[str] = None
    license_image_url: Optional[str] = None
    status: VerificationStatus
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    code: str
