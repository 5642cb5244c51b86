"""Domain enumerations and state-transition rules."""

import enum


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# State machine: maps current status -> set of valid next statuses.
# Cancellation is not a status: a pending request is deleted outright.
REQUEST_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.PENDING: {RequestStatus.ACCEPTED, RequestStatus.REJECTED},
    RequestStatus.ACCEPTED: set(),
    RequestStatus.REJECTED: set(),
}

# Statuses that hold a rider's claim on a ride
ACTIVE_STATUSES: frozenset[RequestStatus] = frozenset(
    {RequestStatus.PENDING, RequestStatus.ACCEPTED}
)


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"


class NotificationCategory(str, enum.Enum):
    RIDE_REQUEST = "ride_request"
    REQUEST_ACCEPTED = "request_accepted"
    REQUEST_REJECTED = "request_rejected"
    RIDE_CANCELLED = "ride_cancelled"


class VerificationStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
