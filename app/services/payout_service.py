"""
Payout Service

Payout lifecycle for referral commissions:
- Partner requests a payout against an eligible referral
- Staff process it (processing / paid / failed), uploading proof of transfer
- Partner cancels while it is still pending

Every precondition is checked before anything is written. The payout row
and the referral's claim bookkeeping (payout_requested and
total_commission_claimed) always change in the same commit.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, InvalidArgumentError, InvalidStateError, NotFoundError
from app.database import commit_or_conflict
from app.models.internal_user import InternalUser
from app.models.partner import Partner
from app.models.payout import PartnerPayout, PayoutStatus, PAYMENT_REFERENCE_MAX_LENGTH
from app.models.referral import Referral
from app.services import eligibility
from app.services import payout_state_machine as psm
from app.services.audit_service import AuditService
from app.services.bank_service import BankService
from app.services.commission_calculator import normalize_amount
from app.services.notification_service import NotificationService
from app.services.referral_service import ReferralService
from app.services.upload_service import UploadService


logger = logging.getLogger(__name__)


def _release_claim(referral: Referral, payout: PartnerPayout) -> None:
    """Hand a failed or cancelled payout's amount back to the referral."""
    referral.total_commission_claimed = referral.total_commission_claimed - payout.amount
    referral.payout_requested = False
    referral.payout_requested_at = None


@dataclass
class ProofFile:
    """Proof-of-payment upload as received from the client."""
    content: bytes
    filename: str
    content_type: str


class PayoutService:
    """Service for partner payout operations"""

    def __init__(self, db: AsyncSession, bank_service: Optional[BankService] = None):
        self.db = db
        self.referrals = ReferralService(db)
        self.audit = AuditService(db)
        self.notifications = NotificationService(db)
        self.banks = bank_service or BankService()

    # ========================================================================
    # Lookups
    # ========================================================================

    async def get_payout(self, payout_id: uuid.UUID) -> PartnerPayout:
        result = await self.db.execute(
            select(PartnerPayout)
            .options(
                selectinload(PartnerPayout.referral),
                selectinload(PartnerPayout.partner),
            )
            .where(PartnerPayout.id == payout_id)
        )
        payout = result.scalar_one_or_none()
        if not payout:
            raise NotFoundError("Payout not found")
        return payout

    async def get_active_payout(self, referral_id: uuid.UUID) -> Optional[PartnerPayout]:
        result = await self.db.execute(
            select(PartnerPayout).where(
                PartnerPayout.referral_id == referral_id,
                PartnerPayout.status.in_(PayoutStatus.active()),
            )
        )
        return result.scalars().first()

    async def get_payout_detail(self, payout_id: uuid.UUID) -> dict:
        """Payout with partner bank details; bank name looked up, never fatal."""
        payout = await self.get_payout(payout_id)
        partner = payout.partner
        bank_name = await self.banks.bank_name_or_fallback(partner.bank_code)

        return {
            "payout": payout,
            "referral_code": payout.referral.referral_code,
            "prospect_company_name": payout.referral.prospect_company_name,
            "partner_name": partner.full_name,
            "partner_email": partner.email,
            "bank": {
                "bank_code": partner.bank_code,
                "bank_name": bank_name,
                "account_number": partner.bank_account_number,
                "account_name": partner.bank_account_name,
            },
        }

    # ========================================================================
    # Request (partner)
    # ========================================================================

    async def request_payout(
        self,
        partner: Partner,
        referral_id: uuid.UUID,
        amount: Optional[Decimal] = None,
    ) -> PartnerPayout:
        """
        Create a pending payout against an eligible referral.

        Checks, in order:
        1. Referral exists and is the partner's           -> NotFoundError
        2. Finalized, eligible, unclaimed commission > 0   -> InvalidStateError
        3. Supplied amount within (0, unclaimed]           -> InvalidArgumentError
        4. No payout already in flight                     -> ConflictError

        The payout amount is added to the referral's claimed commission, so
        whatever is left over stays claimable once this payout settles.
        """
        referral = await self.referrals.get_partner_referral(referral_id, partner.id)

        failed = eligibility.failed_criteria(referral)
        in_flight = eligibility.NOT_PAYOUT_REQUESTED in failed
        blocking = [
            c for c in failed
            if c is not eligibility.NOT_PAYOUT_REQUESTED
            # An in-flight payout holds the claim; reported as a conflict below
            and not (in_flight and c is eligibility.UNCLAIMED_COMMISSION)
        ]
        if blocking:
            raise InvalidStateError(
                "Referral is not eligible for payout yet",
                errors=[f"{c.name}: {c.message}" for c in blocking],
            )

        unclaimed = referral.unclaimed_commission
        if amount is None:
            payout_amount = unclaimed
        else:
            payout_amount = normalize_amount(amount)
            if payout_amount <= 0:
                raise InvalidArgumentError("Payout amount must be greater than 0", field="amount")
            if payout_amount > unclaimed:
                raise InvalidArgumentError(
                    f"Payout amount exceeds available commission of {unclaimed}",
                    field="amount",
                )

        if in_flight:
            raise ConflictError("Payout already requested for this referral")
        if await self.get_active_payout(referral.id):
            raise ConflictError("A payout for this referral already exists")

        now = datetime.now(timezone.utc)
        payout = PartnerPayout(
            id=uuid.uuid4(),
            partner_id=partner.id,
            referral_id=referral.id,
            amount=payout_amount,
            status=PayoutStatus.PENDING.value,
            requested_at=now,
        )
        self.db.add(payout)
        referral.total_commission_claimed = referral.total_commission_claimed + payout_amount
        referral.payout_requested = True
        referral.payout_requested_at = now

        await commit_or_conflict(self.db, "Payout")
        logger.info(f"Payout {payout.id} requested by partner {partner.id}: {payout_amount} on {referral.referral_code}")

        await self.notifications.notify_payout_requested(payout, referral, partner.full_name)
        await self.audit.log_best_effort(
            action="REQUEST_PAYOUT",
            entity_type="PAYOUT",
            entity_id=payout.id,
            actor_id=partner.id,
            actor_type="partner",
            new_values={**payout.snapshot(), "referral_id": str(referral.id)},
            description=f"Payout requested for referral {referral.referral_code}",
        )
        return payout

    # ========================================================================
    # Process (internal staff)
    # ========================================================================

    async def process_payout(
        self,
        payout_id: uuid.UUID,
        new_status: str,
        user: InternalUser,
        payment_reference: Optional[str] = None,
        notes: Optional[str] = None,
        amount_paid: Optional[Decimal] = None,
        proof: Optional[ProofFile] = None,
    ) -> PartnerPayout:
        """
        Move a payout to processing, paid or failed.

        paid requires a payment_reference of at most 100 characters. A proof
        file is validated, then uploaded before the row is written; an upload
        failure aborts with UpstreamError and leaves the payout untouched.

        paid keeps the amount claimed on the referral; failed hands it back.
        """
        psm.validate_staff_target(new_status)

        payment_reference = (payment_reference or "").strip() or None
        if new_status == PayoutStatus.PAID.value and not payment_reference:
            raise InvalidArgumentError("Payment reference is required to mark a payout as paid",
                                       field="payment_reference")
        if payment_reference and len(payment_reference) > PAYMENT_REFERENCE_MAX_LENGTH:
            raise InvalidArgumentError(
                f"Payment reference must be at most {PAYMENT_REFERENCE_MAX_LENGTH} characters",
                field="payment_reference",
            )

        paid_amount: Optional[Decimal] = None
        if amount_paid is not None:
            paid_amount = normalize_amount(amount_paid, field="amount_paid")
            if paid_amount <= 0:
                raise InvalidArgumentError("Amount paid must be greater than 0", field="amount_paid")

        if proof is not None:
            UploadService.validate_proof(proof.content, proof.content_type)

        payout = await self.get_payout(payout_id)
        psm.validate_transition(payout.status, new_status)

        if paid_amount is not None and paid_amount > payout.amount:
            raise InvalidArgumentError(
                f"Amount paid exceeds payout amount of {payout.amount}",
                field="amount_paid",
            )

        # Critical path: upload first, fail the operation if it does not land
        proof_url = None
        if proof is not None:
            proof_url = UploadService.upload_proof(proof.content, proof.filename, proof.content_type)

        old_values = payout.snapshot()
        old_status = payout.status

        payout.status = new_status
        payout.processed_by = user.id
        if payment_reference:
            payout.payment_reference = payment_reference
        if notes:
            payout.notes = notes
        if paid_amount is not None:
            payout.amount_paid = paid_amount
        if proof_url:
            payout.proof_of_payment_url = proof_url

        if new_status == PayoutStatus.PAID.value:
            payout.processed_at = datetime.now(timezone.utc)
            if payout.amount_paid is None:
                payout.amount_paid = payout.amount
            # Settled: the amount stays claimed, any remainder is claimable again
            payout.referral.payout_requested = False
            payout.referral.payout_requested_at = None
        elif new_status == PayoutStatus.FAILED.value:
            _release_claim(payout.referral, payout)

        await commit_or_conflict(self.db, "Payout")
        logger.info(
            f"Payout {payout.id}: {old_status} -> {new_status} by {user.id}"
            f"{' ref=' + payment_reference if payment_reference else ''}"
        )

        await self.notifications.notify_payout_status(payout)
        await self.audit.log_best_effort(
            action="PROCESS_PAYOUT",
            entity_type="PAYOUT",
            entity_id=payout.id,
            actor_id=user.id,
            actor_type="internal",
            old_values=old_values,
            new_values=payout.snapshot(),
            description=psm.get_transition_action(old_status, new_status),
        )
        return payout

    # ========================================================================
    # Cancel (partner)
    # ========================================================================

    async def cancel_payout(
        self,
        partner: Partner,
        payout_id: uuid.UUID,
        notes: Optional[str] = None,
    ) -> PartnerPayout:
        """
        Partner withdraws a pending payout.

        The payout amount goes back to the referral in the same commit, so
        the commission shows up as claimable again.
        """
        result = await self.db.execute(
            select(PartnerPayout)
            .options(selectinload(PartnerPayout.referral))
            .where(
                PartnerPayout.id == payout_id,
                PartnerPayout.partner_id == partner.id,
            )
        )
        payout = result.scalar_one_or_none()
        if not payout:
            raise NotFoundError("Payout not found")

        if payout.status != PayoutStatus.PENDING.value:
            raise ConflictError(f"Only pending payouts can be cancelled (current status: {payout.status})")

        old_values = payout.snapshot()
        referral: Referral = payout.referral

        payout.status = PayoutStatus.CANCELLED.value
        payout.notes = notes or "Cancelled by partner"
        _release_claim(referral, payout)

        await commit_or_conflict(self.db, "Payout")
        logger.info(f"Payout {payout.id} cancelled by partner {partner.id}; {referral.referral_code} claimable again")

        await self.audit.log_best_effort(
            action="CANCEL_PAYOUT",
            entity_type="PAYOUT",
            entity_id=payout.id,
            actor_id=partner.id,
            actor_type="partner",
            old_values=old_values,
            new_values=payout.snapshot(),
            description=payout.notes,
        )
        return payout
