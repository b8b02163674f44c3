"""
Referral Service

Handles the referral side of the commission subsystem:
- Referral creation with unique PREFIX-XXXXXX codes
- Code lookup (pattern-validated before any query)
- Pipeline status transitions with lead sync
- Deal finalization, the only path that makes commission claimable
"""

import logging
import random
import re
import string
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import InvalidArgumentError, InvalidStateError, NotFoundError
from app.database import commit_or_conflict
from app.models.internal_user import InternalUser
from app.models.lead import Lead, LeadActivityType, LeadStatus
from app.models.partner import Partner
from app.models.referral import Referral, ReferralStatus
from app.schemas.referral import ReferralCreate
from app.services import referral_state_machine as rsm
from app.services.audit_service import AuditService
from app.services.lead_service import LeadService


logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def referral_code_pattern() -> re.Pattern:
    return re.compile(rf"^{re.escape(settings.REFERRAL_CODE_PREFIX)}-[A-Z0-9]{{{CODE_LENGTH}}}$", re.IGNORECASE)


def normalize_referral_code(code: str) -> str:
    """Validate PREFIX-XXXXXX (any case) and return it upper-cased."""
    code = (code or "").strip()
    if not referral_code_pattern().match(code):
        raise InvalidArgumentError(
            f"Invalid referral code format. Expected {settings.REFERRAL_CODE_PREFIX}-XXXXXX",
            field="referral_code",
        )
    return code.upper()


class ReferralService:
    """Service for referral pipeline operations"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.leads = LeadService(db)
        self.audit = AuditService(db)

    # ========================================================================
    # Referral Code Generation
    # ========================================================================

    async def generate_referral_code(self) -> str:
        """
        Generate unique referral code: PREFIX + 6 alphanumeric characters
        Example: CRYPT-KR7X2M
        """
        while True:
            suffix = ''.join(random.choices(CODE_ALPHABET, k=CODE_LENGTH))
            code = f"{settings.REFERRAL_CODE_PREFIX}-{suffix}"

            result = await self.db.execute(
                select(Referral.id).where(Referral.referral_code == code)
            )
            if not result.scalar_one_or_none():
                return code

    # ========================================================================
    # Lookups
    # ========================================================================

    async def get_referral(self, referral_id: uuid.UUID) -> Referral:
        result = await self.db.execute(select(Referral).where(Referral.id == referral_id))
        referral = result.scalar_one_or_none()
        if not referral:
            raise NotFoundError("Referral not found")
        return referral

    async def get_partner_referral(self, referral_id: uuid.UUID, partner_id: uuid.UUID) -> Referral:
        """Referral owned by the partner. Someone else's referral is reported as not found."""
        result = await self.db.execute(
            select(Referral).where(
                Referral.id == referral_id,
                Referral.partner_id == partner_id,
            )
        )
        referral = result.scalar_one_or_none()
        if not referral:
            raise NotFoundError("Referral not found")
        return referral

    async def get_referral_by_code(self, code: str) -> Referral:
        code = normalize_referral_code(code)
        result = await self.db.execute(
            select(Referral)
            .options(selectinload(Referral.partner))
            .where(Referral.referral_code == code)
        )
        referral = result.scalar_one_or_none()
        if not referral:
            raise NotFoundError(f"Referral {code} not found")
        return referral

    # ========================================================================
    # Creation
    # ========================================================================

    async def create_referral(self, partner: Partner, data: ReferralCreate) -> Tuple[Referral, str]:
        """
        Partner submits a prospect.

        Returns:
            (referral, shareable_link)
        """
        if not partner.is_active:
            raise InvalidStateError(f"Partner account is {partner.status}. Only active partners can create referrals")

        code = await self.generate_referral_code()

        referral = Referral(
            id=uuid.uuid4(),
            referral_code=code,
            partner_id=partner.id,
            prospect_company_name=data.prospect_company_name,
            contact_name=data.contact_name,
            contact_email=str(data.contact_email),
            contact_phone=data.contact_phone,
            industry=data.industry,
            notes=data.notes,
            estimated_deal_value=data.estimated_deal_value,
            status=ReferralStatus.CODE_SENT.value,
            total_deal_value=Decimal("0.00"),
            total_commission_earned=Decimal("0.00"),
            total_commission_claimed=Decimal("0.00"),
            commission_eligible=False,
            payout_requested=False,
        )
        self.db.add(referral)
        await commit_or_conflict(self.db, "Referral")

        logger.info(f"Referral {code} created by partner {partner.id}")

        await self.audit.log_best_effort(
            action="CREATE",
            entity_type="REFERRAL",
            entity_id=referral.id,
            actor_id=partner.id,
            actor_type="partner",
            new_values={"referral_code": code, **referral.snapshot()},
            description=f"Referral created for {referral.prospect_company_name}",
        )

        shareable_link = f"{settings.FRONTEND_URL.rstrip('/')}/referral/{code}"
        return referral, shareable_link

    # ========================================================================
    # Pipeline transitions
    # ========================================================================

    def _sync_lead(self, lead: Optional[Lead], referral_status: str, user: InternalUser,
                   old_status: str, notes: Optional[str], activity_type: str, subject: str) -> None:
        if not lead:
            return

        lead_status = rsm.lead_status_for(referral_status)
        old_lead_status = lead.status
        if lead_status and lead.status != lead_status:
            lead.status = lead_status
            if lead_status == LeadStatus.CONVERTED.value and not lead.converted_at:
                lead.converted_at = datetime.now(timezone.utc)

        description = f"Referral status updated to: {referral_status}"
        if notes:
            description += f" - {notes}"
        self.leads.add_activity(
            lead,
            activity_type,
            subject,
            description=description,
            old_status=old_status,
            new_status=referral_status,
            created_by_id=user.id,
        )
        if old_lead_status != lead.status:
            logger.info(f"Lead {lead.id} synced {old_lead_status} -> {lead.status}")

    async def transition_status(
        self,
        referral_id: uuid.UUID,
        new_status: str,
        user: InternalUser,
        notes: Optional[str] = None,
    ) -> Referral:
        """
        Move a referral along the pipeline.

        fully_paid is routed through finalize_deal so commission_eligible has
        a single writer.
        """
        # Reject unknown values before touching the database
        rsm.validate_status_value(new_status)

        if new_status == ReferralStatus.FULLY_PAID.value:
            return await self.finalize_deal(referral_id, user, notes=notes)

        referral = await self.get_referral(referral_id)
        old_status = referral.status
        rsm.validate_transition(old_status, new_status)

        lead = await self.leads.get_lead_for_referral(referral.id)
        old_values = referral.snapshot()

        referral.status = new_status
        self._sync_lead(
            lead, new_status, user, old_status, notes,
            LeadActivityType.REFERRAL_STATUS_UPDATED.value,
            rsm.get_transition_action(old_status, new_status),
        )

        await commit_or_conflict(self.db, "Referral")
        logger.info(f"Referral {referral.referral_code}: {old_status} -> {new_status}")

        await self.audit.log_best_effort(
            action="STATUS_CHANGE",
            entity_type="REFERRAL",
            entity_id=referral.id,
            actor_id=user.id,
            actor_type="internal",
            old_values=old_values,
            new_values=referral.snapshot(),
            description=notes or f"Status changed from {old_status} to {new_status}",
        )
        return referral

    async def finalize_deal(
        self,
        referral_id: uuid.UUID,
        user: InternalUser,
        notes: Optional[str] = None,
    ) -> Referral:
        """
        Mark the deal fully paid. Commission becomes claimable.

        This is the only place commission_eligible is set, and nothing clears it.
        """
        referral = await self.get_referral(referral_id)
        old_status = referral.status

        if old_status == ReferralStatus.FULLY_PAID.value:
            raise InvalidStateError("Deal has already been finalized")
        rsm.validate_transition(old_status, ReferralStatus.FULLY_PAID.value)

        lead = await self.leads.get_lead_for_referral(referral.id)
        old_values = referral.snapshot()

        referral.status = ReferralStatus.FULLY_PAID.value
        referral.commission_eligible = True
        referral.finalized_at = datetime.now(timezone.utc)
        self._sync_lead(
            lead, referral.status, user, old_status, notes or "Deal finalized and marked as fully paid",
            LeadActivityType.DEAL_FINALIZED.value,
            rsm.get_transition_action(old_status, referral.status),
        )

        await commit_or_conflict(self.db, "Referral")
        logger.info(
            f"Referral {referral.referral_code} finalized; "
            f"commission {referral.total_commission_earned} now eligible"
        )

        await self.audit.log_best_effort(
            action="FINALIZE",
            entity_type="REFERRAL",
            entity_id=referral.id,
            actor_id=user.id,
            actor_type="internal",
            old_values=old_values,
            new_values=referral.snapshot(),
            description=notes or "Deal finalized",
        )
        return referral

    async def finalize_deal_for_lead(
        self,
        lead_id: uuid.UUID,
        user: InternalUser,
        notes: Optional[str] = None,
    ) -> Tuple[Lead, Referral]:
        """Finalize keyed by lead: the lead must be converted and linked to a referral."""
        lead = await self.leads.get_lead(lead_id)
        if lead.status != LeadStatus.CONVERTED.value:
            raise InvalidStateError("Lead must be converted before the deal can be finalized")
        if not lead.referral_id:
            raise InvalidStateError("Lead is not linked to a partner referral")

        referral = await self.finalize_deal(lead.referral_id, user, notes=notes)
        return lead, referral
