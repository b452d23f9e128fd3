"""
Ride request endpoints
======================

POST /api/v1/ride-requests      -- ask for a route nobody has published yet
GET  /api/v1/ride-requests/mine -- the current customer's requests, newest first
"""

from fastapi import APIRouter, Depends, Request

from ridebook.api.dependencies import get_current_user, get_orchestrator
from ridebook.api.middleware import limiter
from ridebook.api.schemas import RideRequestCreateRequest, RideRequestResponse
from ridebook.config import settings
from ridebook.domain.entities import Actor
from ridebook.services.orchestrator import LifecycleOrchestrator

router = APIRouter(prefix="/ride-requests", tags=["ride-requests"])


@router.post(
    "",
    status_code=201,
    response_model=RideRequestResponse,
    summary="Request a ride on a route",
)
@limiter.limit(settings.rate_limit)
async def create_ride_request(
    request: Request,
    body: RideRequestCreateRequest,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    ride_request = await orchestrator.ride_requests.create(actor, **body.model_dump())
    return RideRequestResponse.model_validate(ride_request)


@router.get(
    "/mine",
    response_model=list[RideRequestResponse],
    summary="My ride requests",
)
@limiter.limit(settings.rate_limit)
async def my_ride_requests(
    request: Request,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    return [
        RideRequestResponse.model_validate(r)
        for r in await orchestrator.ride_requests.list_mine(actor)
    ]
