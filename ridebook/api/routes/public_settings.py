"""Public platform settings.

GET /api/v1/settings/booking-fee -- fee currently charged on new bookings
"""

from fastapi import APIRouter, Depends

from ridebook.api.dependencies import get_orchestrator
from ridebook.api.schemas import BookingFeeResponse
from ridebook.services.orchestrator import LifecycleOrchestrator

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/booking-fee", response_model=BookingFeeResponse, summary="Current booking fee")
async def booking_fee(
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
):
    fee = await orchestrator.settings.get_booking_fee()
    return BookingFeeResponse(enabled=fee.enabled, amount=fee.amount)
