"""
KYC store operations.

Uploaded files are handled by the upload collaborator; a submission only
records the URLs it returned.  Approval flips ``users.is_kyc_verified`` in
the same transaction as the review, which is what the KYC gate reads.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.domain.entities import Actor, ensure_transition
from ridebook.domain.enums import KYC_TRANSITIONS, KycStatus
from ridebook.domain.errors import Forbidden, NotFound, ValidationError
from ridebook.infrastructure.models import KycVerificationModel
from ridebook.infrastructure.repositories import KycRepository, UserRepository

from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def _required(value: Optional[str], label: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{label} is required")
    return value.strip()


class KycService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def submit(
        self,
        actor: Actor,
        *,
        document_type: str,
        document_id: str,
        document_url: str,
        vehicle_type: Optional[str] = None,
        vehicle_number: Optional[str] = None,
        driving_license_url: Optional[str] = None,
        selfie_url: Optional[str] = None,
    ) -> KycVerificationModel:
        if actor.is_admin:
            raise Forbidden("Admins do not submit KYC documents")
        fields = dict(
            user_id=actor.id,
            document_type=_required(document_type, "Document type"),
            document_id=_required(document_id, "Document number"),
            document_url=_required(document_url, "Document image"),
            vehicle_type=vehicle_type,
            vehicle_number=vehicle_number,
            driving_license_url=driving_license_url,
            selfie_url=selfie_url,
        )
        if actor.is_driver:
            fields["vehicle_type"] = _required(vehicle_type, "Vehicle type")
            fields["vehicle_number"] = _required(vehicle_number, "Vehicle number")

        async def _op(session: AsyncSession) -> KycVerificationModel:
            latest = await KycRepository(session).latest_status(actor.id)
            if latest == KycStatus.APPROVED:
                raise ValidationError("KYC is already approved")
            if latest == KycStatus.PENDING:
                raise ValidationError("A KYC submission is already under review")
            return await KycRepository(session).create(
                KycVerificationModel(status=KycStatus.PENDING, **fields)
            )

        created = await self.uow.run(_op, name="submit_kyc")
        logger.info("KYC %d submitted by user %d", created.id, actor.id)
        return created

    async def review(
        self,
        kyc_id: int,
        actor: Actor,
        status: KycStatus,
        remarks: Optional[str] = None,
    ) -> KycVerificationModel:
        if not actor.is_admin:
            raise Forbidden("Only admins can review KYC submissions")

        async def _op(session: AsyncSession) -> KycVerificationModel:
            kyc = await KycRepository(session).get_for_update(kyc_id)
            if not kyc:
                raise NotFound(f"KYC verification {kyc_id} not found")
            ensure_transition(KYC_TRANSITIONS, KycStatus(kyc.status), status, "KYC")
            user = await UserRepository(session).get_by_id(kyc.user_id)
            if not user:
                raise NotFound(f"User {kyc.user_id} not found")
            kyc.status = status
            kyc.remarks = remarks
            if status == KycStatus.APPROVED:
                user.is_kyc_verified = True
            await session.flush()
            return kyc

        kyc = await self.uow.run(_op, name="review_kyc")
        logger.info("KYC %d %s by admin %d", kyc_id, status.value, actor.id)
        return kyc

    async def list_mine(self, actor: Actor) -> list[KycVerificationModel]:
        async def _op(session: AsyncSession) -> list[KycVerificationModel]:
            return await KycRepository(session).list_for_user(actor.id)

        return await self.uow.read(_op)

    async def list_pending(self, actor: Actor) -> list[KycVerificationModel]:
        if not actor.is_admin:
            raise Forbidden("Only admins can list pending KYC submissions")

        async def _op(session: AsyncSession) -> list[KycVerificationModel]:
            return await KycRepository(session).list_pending()

        return await self.uow.read(_op)
