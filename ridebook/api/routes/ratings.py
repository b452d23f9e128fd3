"""
Rating endpoints
================

POST /api/v1/ratings                      -- rate the other party of a completed booking
GET  /api/v1/ratings/user/{user_id}       -- ratings received plus average
GET  /api/v1/ratings/booking/{booking_id} -- ratings left on a booking
"""

from fastapi import APIRouter, Depends, Request

from ridebook.api.dependencies import get_current_user, get_orchestrator
from ridebook.api.middleware import limiter
from ridebook.api.schemas import (
    ErrorResponse,
    RatingCreateRequest,
    RatingResponse,
    UserRatingsResponse,
)
from ridebook.config import settings
from ridebook.domain.entities import Actor
from ridebook.services.orchestrator import LifecycleOrchestrator

router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.post(
    "",
    status_code=201,
    response_model=RatingResponse,
    summary="Rate a completed booking",
    responses={409: {"model": ErrorResponse, "description": "Already rated"}},
)
@limiter.limit(settings.rate_limit)
async def submit_rating(
    request: Request,
    body: RatingCreateRequest,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    rating = await orchestrator.ratings.submit(
        actor, body.booking_id, body.to_user_id, body.rating, body.review
    )
    return RatingResponse.model_validate(rating)


@router.get(
    "/user/{user_id}",
    response_model=UserRatingsResponse,
    summary="Ratings received by a user",
)
@limiter.limit(settings.rate_limit)
async def user_ratings(
    request: Request,
    user_id: int,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    ratings = await orchestrator.ratings.list_for_user(user_id)
    return UserRatingsResponse(
        user_id=user_id,
        average_rating=await orchestrator.ratings.average_rating(user_id),
        ratings=[RatingResponse.model_validate(r) for r in ratings],
    )


@router.get(
    "/booking/{booking_id}",
    response_model=list[RatingResponse],
    summary="Ratings left on a booking",
)
@limiter.limit(settings.rate_limit)
async def booking_ratings(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    ratings = await orchestrator.ratings.list_for_booking(booking_id, actor)
    return [RatingResponse.model_validate(r) for r in ratings]
