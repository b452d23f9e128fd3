"""
KYC endpoints
=============

POST /api/v1/kyc      -- submit documents (URLs from the upload service)
GET  /api/v1/kyc/mine -- the current user's submissions, newest first
"""

from fastapi import APIRouter, Depends, Request

from ridebook.api.dependencies import get_current_user, get_orchestrator
from ridebook.api.middleware import limiter
from ridebook.api.schemas import KycResponse, KycSubmitRequest
from ridebook.config import settings
from ridebook.domain.entities import Actor
from ridebook.services.orchestrator import LifecycleOrchestrator

router = APIRouter(prefix="/kyc", tags=["kyc"])


@router.post("", status_code=201, response_model=KycResponse, summary="Submit KYC")
@limiter.limit(settings.rate_limit)
async def submit_kyc(
    request: Request,
    body: KycSubmitRequest,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    kyc = await orchestrator.kyc.submit(actor, **body.model_dump())
    return KycResponse.model_validate(kyc)


@router.get("/mine", response_model=list[KycResponse], summary="My KYC submissions")
@limiter.limit(settings.rate_limit)
async def my_kyc(
    request: Request,
    actor: Actor = Depends(get_current_user),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    return [KycResponse.model_validate(k) for k in await orchestrator.kyc.list_mine(actor)]
