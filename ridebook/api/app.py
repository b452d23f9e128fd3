"""
FastAPI application factory.

* Registers routes for rides, bookings, ratings, KYC, ride requests,
  settings and admin.
* Translates domain errors into JSON responses in one handler.
* Starts / stops the background maintenance worker via lifespan events.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ridebook.api.middleware import limiter
from ridebook.api.routes import (
    admin,
    bookings,
    kyc,
    public_settings,
    ratings,
    ride_requests,
    rides,
)
from ridebook.domain.errors import DomainError, ValidationError
from ridebook.infrastructure.redis_client import close_redis
from ridebook.workers import maintenance as _maintenance

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the maintenance worker on startup; stop on shutdown."""
    await _maintenance.start_maintenance_loop()
    yield
    await _maintenance.stop_maintenance_loop()
    await close_redis()


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 409:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _describe(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    return f"{'.'.join(loc)}: {error['msg']}" if loc else error["msg"]


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed requests share the domain error shape: 400 ``validation_error``."""
    error = ValidationError("; ".join(_describe(e) for e in exc.errors()))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ridebook API",
        description=(
            "One-way ride marketplace: drivers publish rides, customers book "
            "seats.  KYC gating, booking fees, ratings and safe concurrent "
            "seat reservation."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Routers
    for module in (rides, bookings, ratings, kyc, ride_requests, public_settings, admin):
        app.include_router(module.router, prefix="/api/v1")

    return app
