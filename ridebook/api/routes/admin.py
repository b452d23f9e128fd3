"""
Admin / observability endpoints
===============================

GET   /api/v1/admin/health               -- simple health check
GET   /api/v1/admin/kyc/pending          -- KYC submissions awaiting review
PATCH /api/v1/admin/kyc/{kyc_id}         -- approve / reject a submission
GET   /api/v1/admin/settings/booking-fee -- current booking fee setting
PATCH /api/v1/admin/settings/booking-fee -- change it (new bookings only)
PATCH /api/v1/admin/users/{user_id}      -- suspend / reinstate an account
GET   /api/v1/admin/ride-requests        -- customer ride requests (optional ?status=)
PATCH /api/v1/admin/ride-requests/{request_id}/status
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from ridebook.api.dependencies import get_current_user, get_orchestrator
from ridebook.api.middleware import limiter
from ridebook.api.schemas import (
    BookingFeeResponse,
    BookingFeeUpdateRequest,
    HealthResponse,
    KycResponse,
    KycReviewRequest,
    RideRequestResponse,
    RideRequestStatusRequest,
    UserResponse,
    UserSuspendRequest,
)
from ridebook.config import settings
from ridebook.domain.entities import Actor
from ridebook.domain.enums import RideRequestStatus
from ridebook.domain.errors import Forbidden
from ridebook.services.orchestrator import LifecycleOrchestrator

router = APIRouter(prefix="/admin", tags=["admin"])


def require_admin(actor: Actor = Depends(get_current_user)) -> Actor:
    if not actor.is_admin:
        raise Forbidden("Admin access required")
    return actor


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()


@router.get(
    "/kyc/pending",
    response_model=list[KycResponse],
    summary="List KYC submissions awaiting review",
)
@limiter.limit(settings.rate_limit)
async def pending_kyc(
    request: Request,
    actor: Actor = Depends(require_admin),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    return [KycResponse.model_validate(k) for k in await orchestrator.kyc.list_pending(actor)]


@router.patch(
    "/kyc/{kyc_id}",
    response_model=KycResponse,
    summary="Approve or reject a KYC submission",
)
@limiter.limit(settings.rate_limit)
async def review_kyc(
    request: Request,
    kyc_id: int,
    body: KycReviewRequest,
    actor: Actor = Depends(require_admin),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    kyc = await orchestrator.kyc.review(kyc_id, actor, body.status, body.remarks)
    return KycResponse.model_validate(kyc)


@router.get(
    "/settings/booking-fee",
    response_model=BookingFeeResponse,
    summary="Read the booking fee setting",
)
@limiter.limit(settings.rate_limit)
async def get_booking_fee(
    request: Request,
    actor: Actor = Depends(require_admin),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    fee = await orchestrator.settings.get_booking_fee()
    return BookingFeeResponse(enabled=fee.enabled, amount=fee.amount)


@router.patch(
    "/settings/booking-fee",
    response_model=BookingFeeResponse,
    summary="Change the booking fee",
    description="Applies to bookings created afterwards; existing bookings keep their fee.",
)
@limiter.limit(settings.rate_limit)
async def update_booking_fee(
    request: Request,
    body: BookingFeeUpdateRequest,
    actor: Actor = Depends(require_admin),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    fee = await orchestrator.settings.update_booking_fee(
        actor, enabled=body.enabled, amount=body.amount
    )
    return BookingFeeResponse(enabled=fee.enabled, amount=fee.amount)


@router.patch(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Suspend or reinstate a user",
)
@limiter.limit(settings.rate_limit)
async def update_user(
    request: Request,
    user_id: int,
    body: UserSuspendRequest,
    actor: Actor = Depends(require_admin),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    user = await orchestrator.users.set_suspended(actor, user_id, body.is_suspended)
    return UserResponse.model_validate(user)


@router.get(
    "/ride-requests",
    response_model=list[RideRequestResponse],
    summary="List customer ride requests",
)
@limiter.limit(settings.rate_limit)
async def list_ride_requests(
    request: Request,
    status: Optional[RideRequestStatus] = None,
    actor: Actor = Depends(require_admin),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    requests = await orchestrator.ride_requests.list_all(actor, status)
    return [RideRequestResponse.model_validate(r) for r in requests]


@router.patch(
    "/ride-requests/{request_id}/status",
    response_model=RideRequestResponse,
    summary="Mark a ride request responded or closed",
)
@limiter.limit(settings.rate_limit)
async def update_ride_request_status(
    request: Request,
    request_id: int,
    body: RideRequestStatusRequest,
    actor: Actor = Depends(require_admin),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    ride_request = await orchestrator.ride_requests.update_status(
        request_id, actor, body.status
    )
    return RideRequestResponse.model_validate(ride_request)
