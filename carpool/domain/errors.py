"""Domain exceptions raised by the catalog, ledger and notification inbox."""


class CarpoolError(Exception):
    """Base class for locally-detected, non-retried domain failures."""

    code = "carpool_error"


class ValidationError(CarpoolError):
    """Malformed input, e.g. non-positive seat count."""

    code = "validation_error"


class AuthorizationError(CarpoolError):
    """Caller does not own the resource."""

    code = "authorization_error"


class NotFoundError(CarpoolError):
    """Referenced ride, request, notification or profile does not exist."""

    code = "not_found"


class StateError(CarpoolError):
    """Operation is invalid for the current lifecycle state."""

    code = "invalid_state"


class ConflictError(CarpoolError):
    """Duplicate active request, or rider already a passenger."""

    code = "conflict"


class CapacityError(CarpoolError):
    """No seats remain on the ride."""

    code = "no_capacity"


class SelfRequestError(CarpoolError):
    """Driver attempted to request a seat on their own ride."""

    code = "self_request"
