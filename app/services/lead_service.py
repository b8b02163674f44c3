"""
Lead Service

Leads are the internal tracking records for prospects. This module creates
them (optionally linked to a partner referral by code), converts them into
customers, and owns the lead activity log the referral and payment flows
append to.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.database import commit_or_conflict
from app.models.internal_user import InternalUser
from app.models.lead import Lead, LeadActivity, LeadActivityType, LeadStatus
from app.models.referral import Referral, ReferralStatus
from app.services.audit_service import AuditService


logger = logging.getLogger(__name__)


class LeadService:
    """Service for lead tracking"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ========================================================================
    # Lookups
    # ========================================================================

    async def get_lead(self, lead_id: uuid.UUID) -> Lead:
        result = await self.db.execute(select(Lead).where(Lead.id == lead_id))
        lead = result.scalar_one_or_none()
        if not lead:
            raise NotFoundError("Lead not found")
        return lead

    async def get_lead_for_referral(self, referral_id: uuid.UUID) -> Optional[Lead]:
        result = await self.db.execute(select(Lead).where(Lead.referral_id == referral_id))
        return result.scalar_one_or_none()

    # ========================================================================
    # Activity log
    # ========================================================================

    def add_activity(
        self,
        lead: Lead,
        activity_type: str,
        subject: str,
        description: Optional[str] = None,
        old_status: Optional[str] = None,
        new_status: Optional[str] = None,
        created_by_id: Optional[uuid.UUID] = None,
    ) -> LeadActivity:
        """Stage an activity on the lead; it is committed with the caller's mutation."""
        activity = LeadActivity(
            id=uuid.uuid4(),
            lead_id=lead.id,
            activity_type=activity_type,
            subject=subject,
            description=description,
            old_status=old_status,
            new_status=new_status,
            created_by_id=created_by_id,
        )
        self.db.add(activity)
        return activity

    # ========================================================================
    # Create / convert
    # ========================================================================

    async def create_lead(
        self,
        company_name: str,
        contact_name: Optional[str],
        email: Optional[str],
        phone: Optional[str],
        user: InternalUser,
        referral_code: Optional[str] = None,
        deal_value: Optional[Decimal] = None,
    ) -> Lead:
        """
        Create a lead, linking it to a partner referral when a code is given.

        A linked referral still at code_sent moves to contacted.
        """
        from app.services.referral_service import ReferralService
        from app.services import referral_state_machine as rsm

        referral: Optional[Referral] = None
        if referral_code:
            referral = await ReferralService(self.db).get_referral_by_code(referral_code)
            existing = await self.get_lead_for_referral(referral.id)
            if existing:
                raise ConflictError(f"Referral {referral.referral_code} is already linked to a lead")

        lead = Lead(
            id=uuid.uuid4(),
            referral_id=referral.id if referral else None,
            company_name=company_name,
            contact_name=contact_name,
            email=email,
            phone=phone,
            deal_value=deal_value,
            status=LeadStatus.NEW.value,
        )
        self.db.add(lead)

        self.add_activity(
            lead,
            "lead_created",
            "Lead created",
            description=f"Lead created from {'partner referral ' + referral.referral_code if referral else 'internal source'}",
            new_status=LeadStatus.NEW.value,
            created_by_id=user.id,
        )

        if referral and referral.status == ReferralStatus.CODE_SENT.value:
            referral.status = ReferralStatus.CONTACTED.value
            self.add_activity(
                lead,
                LeadActivityType.REFERRAL_STATUS_UPDATED.value,
                rsm.get_transition_action(ReferralStatus.CODE_SENT.value, ReferralStatus.CONTACTED.value),
                description=f"Referral status updated to: {ReferralStatus.CONTACTED.value}",
                old_status=ReferralStatus.CODE_SENT.value,
                new_status=ReferralStatus.CONTACTED.value,
                created_by_id=user.id,
            )

        await commit_or_conflict(self.db, "Lead")
        logger.info(f"Lead {lead.id} created{' for referral ' + referral.referral_code if referral else ''}")

        await AuditService(self.db).log_best_effort(
            action="CREATE",
            entity_type="LEAD",
            entity_id=lead.id,
            actor_id=user.id,
            actor_type="internal",
            new_values={"company_name": company_name, "referral_code": referral.referral_code if referral else None},
            description=f"Created lead: {company_name}",
        )
        return lead

    async def convert_lead(
        self,
        lead_id: uuid.UUID,
        user: InternalUser,
        final_deal_value: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> Tuple[Lead, Optional[Referral]]:
        """
        Mark a lead converted; its referral (if any) moves to won.

        The referral move goes through the state machine, so a referral that
        is already terminal rejects the whole conversion before anything changes.
        """
        from app.services.referral_service import ReferralService
        from app.services import referral_state_machine as rsm

        lead = await self.get_lead(lead_id)

        referral: Optional[Referral] = None
        if lead.referral_id:
            referral_service = ReferralService(self.db)
            referral = await referral_service.get_referral(lead.referral_id)
            rsm.validate_transition(referral.status, ReferralStatus.WON.value)

        old_status = lead.status
        lead.status = LeadStatus.CONVERTED.value
        lead.converted_at = datetime.now(timezone.utc)
        if final_deal_value is not None:
            lead.deal_value = final_deal_value

        description = notes or "Lead converted to customer"
        if final_deal_value is not None and not notes:
            description += f" with deal value: ₦{final_deal_value:,.2f}"
        self.add_activity(
            lead,
            LeadActivityType.DEAL_CONVERTED.value,
            "Deal converted",
            description=description,
            old_status=old_status,
            new_status=lead.status,
            created_by_id=user.id,
        )

        referral_old = None
        if referral:
            referral_old = referral.snapshot()
            referral.status = ReferralStatus.WON.value
            if final_deal_value is not None:
                referral.estimated_deal_value = final_deal_value

        await commit_or_conflict(self.db, "Lead")
        logger.info(f"Lead {lead.id} converted{'; referral ' + referral.referral_code + ' won' if referral else ''}")

        audit = AuditService(self.db)
        await audit.log_best_effort(
            action="STATUS_CHANGE",
            entity_type="LEAD",
            entity_id=lead.id,
            actor_id=user.id,
            actor_type="internal",
            old_values={"status": old_status},
            new_values={"status": lead.status},
            description="Lead converted",
        )
        if referral:
            await audit.log_best_effort(
                action="STATUS_CHANGE",
                entity_type="REFERRAL",
                entity_id=referral.id,
                actor_id=user.id,
                actor_type="internal",
                old_values=referral_old,
                new_values=referral.snapshot(),
                description=f"Referral {referral.referral_code} won via lead conversion",
            )

        return lead, referral
