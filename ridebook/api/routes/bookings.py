"""
Booking endpoints
=================

POST /api/v1/bookings                      -- book seats on a ride
PUT  /api/v1/bookings/{booking_id}/status  -- confirm / cancel / reconcile
POST /api/v1/bookings/{booking_id}/mark-paid
GET  /api/v1/bookings/mine
GET  /api/v1/bookings/{booking_id}
"""

from fastapi import APIRouter, Depends, Request

from ridebook.api.dependencies import get_current_user, get_orchestrator
from ridebook.api.middleware import limiter
from ridebook.api.schemas import (
    BookingCreateRequest,
    BookingResponse,
    BookingStatusRequest,
    ErrorResponse,
)
from ridebook.config import settings
from ridebook.domain.entities import Actor
from ridebook.services.orchestrator import LifecycleOrchestrator

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "",
    status_code=201,
    response_model=BookingResponse,
    summary="Book seats on a ride",
    responses={
        403: {"model": ErrorResponse, "description": "KYC required or not allowed"},
        409: {"model": ErrorResponse, "description": "No capacity or duplicate booking"},
    },
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    booking = await orchestrator.bookings.create(actor, body.ride_id, body.number_of_seats)
    ride = await orchestrator.rides.get(booking.ride_id)
    return BookingResponse.build(booking, ride)


@router.put(
    "/{booking_id}/status",
    response_model=BookingResponse,
    summary="Change a booking's status",
    description=(
        "``confirmed`` is the driver's confirmation, ``cancelled`` needs a "
        "reason, ``completed`` is an admin reconciliation override."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_booking_status(
    request: Request,
    booking_id: int,
    body: BookingStatusRequest,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    await orchestrator.bookings.update_status(booking_id, actor, body.status, body.reason)
    booking, ride = await orchestrator.bookings.get(booking_id, actor)
    return BookingResponse.build(booking, ride)


@router.post(
    "/{booking_id}/mark-paid",
    response_model=BookingResponse,
    summary="Acknowledge payment for a booking",
)
@limiter.limit(settings.rate_limit)
async def mark_booking_paid(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    await orchestrator.bookings.mark_paid(booking_id, actor)
    booking, ride = await orchestrator.bookings.get(booking_id, actor)
    return BookingResponse.build(booking, ride)


@router.get(
    "/mine",
    response_model=list[BookingResponse],
    summary="List the current customer's bookings",
)
@limiter.limit(settings.rate_limit)
async def my_bookings(
    request: Request,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    pairs = await orchestrator.bookings.list_mine(actor)
    return [BookingResponse.build(booking, ride) for booking, ride in pairs]


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get a booking",
)
@limiter.limit(settings.rate_limit)
async def get_booking(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    booking, ride = await orchestrator.bookings.get(booking_id, actor)
    return BookingResponse.build(booking, ride)
