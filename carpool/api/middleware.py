"""Rate limiting and domain-error translation for the HTTP layer."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from carpool.domain.errors import (
    AuthorizationError,
    CapacityError,
    CarpoolError,
    ConflictError,
    NotFoundError,
    SelfRequestError,
    StateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)

ERROR_STATUS: dict[type[CarpoolError], int] = {
    ValidationError: 422,
    AuthorizationError: 403,
    NotFoundError: 404,
    StateError: 409,
    ConflictError: 409,
    CapacityError: 409,
    SelfRequestError: 400,
}


async def carpool_error_handler(request: Request, exc: CarpoolError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.info(
        "%s %s -> %d %s: %s", request.method, request.url.path, status_code, exc.code, exc
    )
    return JSONResponse(
        status_code=status_code, content={"detail": str(exc), "code": exc.code}
    )
