"""
FastAPI application factory.

* Registers routes for rides, requests, notifications, profiles and admin.
* Maps domain errors to HTTP responses.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from carpool.api.middleware import carpool_error_handler, limiter
from carpool.api.routes import admin, notifications, profiles, requests, rides
from carpool.config import settings
from carpool.domain.errors import CarpoolError
from carpool.services.profiles import ProfileCache

logging.basicConfig(level=settings.log_level)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Carpool Ride Ledger API",
        description=(
            "Drivers publish rides, riders request seats, drivers accept or "
            "reject.  Seat accounting is transactional: a ride is never "
            "booked past capacity and a request is never decided twice."
        ),
        version="1.0.0",
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(CarpoolError, carpool_error_handler)

    # Process-wide profile display cache
    app.state.profile_cache = ProfileCache()

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(requests.router, prefix="/api/v1")
    app.include_router(notifications.router, prefix="/api/v1")
    app.include_router(profiles.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
