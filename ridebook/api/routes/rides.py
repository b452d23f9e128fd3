"""
Ride endpoints
==============

POST  /api/v1/rides                 -- publish a ride (KYC-verified drivers)
GET   /api/v1/rides/search          -- active rides with free seats
GET   /api/v1/rides/popular         -- soonest bookable rides
GET   /api/v1/rides/mine            -- the driver's published rides
GET   /api/v1/rides/{ride_id}       -- ride details
PUT   /api/v1/rides/{ride_id}       -- edit an active ride (owner / admin)
GET   /api/v1/rides/{ride_id}/bookings -- bookings on a ride (driver / admin)
PATCH /api/v1/rides/{ride_id}/cancel   -- cancel, cascading to bookings
PATCH /api/v1/rides/{ride_id}/complete -- complete, cascading to bookings
"""

from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ridebook.api.dependencies import get_current_user, get_orchestrator
from ridebook.api.middleware import limiter
from ridebook.api.schemas import (
    RideCancelRequest,
    RidePublishRequest,
    RideResponse,
    RideUpdateRequest,
    RideWithBookingsResponse,
)
from ridebook.config import settings
from ridebook.domain.entities import Actor
from ridebook.services.orchestrator import LifecycleOrchestrator

router = APIRouter(prefix="/rides", tags=["rides"])


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Publish a ride",
)
@limiter.limit(settings.rate_limit)
async def publish_ride(
    request: Request,
    body: RidePublishRequest,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    ride = await orchestrator.rides.publish(
        actor,
        from_location=body.from_location,
        to_location=body.to_location,
        departure_at=body.departure_at,
        price=body.price,
        total_seats=body.total_seats,
        vehicle_type=body.vehicle_type,
        vehicle_number=body.vehicle_number,
        description=body.description,
    )
    return RideResponse.model_validate(ride)


@router.get(
    "/search",
    response_model=list[RideResponse],
    summary="Search bookable rides",
)
@limiter.limit(settings.rate_limit)
async def search_rides(
    request: Request,
    from_location: str = Query(..., alias="from", min_length=1),
    to_location: str = Query(..., alias="to", min_length=1),
    on: Optional[date] = Query(None, alias="date", description="India-local date"),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    day = datetime.combine(on, time()) if on else None
    rides = await orchestrator.rides.search(from_location, to_location, day)
    return [RideResponse.model_validate(r) for r in rides]


@router.get(
    "/popular",
    response_model=list[RideResponse],
    summary="Soonest rides that still have seats",
)
@limiter.limit(settings.rate_limit)
async def popular_rides(
    request: Request,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    return [RideResponse.model_validate(r) for r in await orchestrator.rides.popular()]


@router.get(
    "/mine",
    response_model=list[RideResponse],
    summary="List rides published by the current driver",
)
@limiter.limit(settings.rate_limit)
async def my_rides(
    request: Request,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    rides = await orchestrator.rides.list_mine(actor)
    return [RideResponse.model_validate(r) for r in rides]


@router.get(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Get ride details",
)
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: int,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    return RideResponse.model_validate(await orchestrator.rides.get(ride_id))


@router.put(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Edit an active ride",
    description=(
        "Omitted fields are unchanged.  Total seats cannot drop below the seats "
        "already booked, and the price is fixed once a seat is booked."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_ride(
    request: Request,
    ride_id: int,
    body: RideUpdateRequest,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    ride = await orchestrator.rides.update(
        ride_id, actor, **body.model_dump(exclude_none=True)
    )
    return RideResponse.model_validate(ride)


@router.get(
    "/{ride_id}/bookings",
    response_model=RideWithBookingsResponse,
    summary="List bookings on a ride",
)
@limiter.limit(settings.rate_limit)
async def ride_bookings(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    outcome = await orchestrator.rides.list_bookings(ride_id, actor)
    return RideWithBookingsResponse.build(outcome.ride, outcome.bookings)


@router.patch(
    "/{ride_id}/cancel",
    response_model=RideWithBookingsResponse,
    summary="Cancel a ride",
    description=(
        "Transitions an ACTIVE ride to CANCELLED.  Every pending or confirmed "
        "booking is cancelled with it and its seats are released."
    ),
)
@limiter.limit(settings.rate_limit)
async def cancel_ride(
    request: Request,
    ride_id: int,
    body: RideCancelRequest,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    outcome = await orchestrator.rides.cancel(ride_id, actor, body.cancellation_reason)
    return RideWithBookingsResponse.build(outcome.ride, outcome.bookings)


@router.patch(
    "/{ride_id}/complete",
    response_model=RideWithBookingsResponse,
    summary="Complete a ride",
    description=(
        "Transitions an ACTIVE ride whose departure has passed to COMPLETED. "
        "Confirmed bookings complete with it; pending bookings are untouched."
    ),
)
@limiter.limit(settings.rate_limit)
async def complete_ride(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    outcome = await orchestrator.rides.complete(ride_id, actor)
    return RideWithBookingsResponse.build(outcome.ride, outcome.bookings)
