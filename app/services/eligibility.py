"""
Eligibility Aggregator

A referral's commission is claimable when all four criteria hold:

    status = fully_paid
    commission_eligible = true
    payout_requested = false
    unclaimed_commission > 0

unclaimed_commission is earned commission minus the amount held by pending,
processing or paid payouts, so a partial payout leaves the remainder
claimable once it settles.

The criteria are declared once in ELIGIBILITY_CRITERIA. The SQL filter used
by the aggregator and the in-memory check used at payout creation are both
built from that tuple, so they cannot disagree.
"""

import logging
import operator
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, List

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.payout import PartnerPayout, PayoutStatus
from app.models.referral import Referral, ReferralStatus


logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class EligibilityCriterion:
    name: str
    attribute: str
    op: Callable[[Any, Any], Any]
    value: Any
    message: str

    def clause(self):
        return self.op(getattr(Referral, self.attribute), self.value)

    def holds_for(self, referral: Referral) -> bool:
        return bool(self.op(getattr(referral, self.attribute), self.value))


STATUS_FULLY_PAID = EligibilityCriterion(
    name="status",
    attribute="status",
    op=operator.eq,
    value=ReferralStatus.FULLY_PAID.value,
    message="Deal has not been finalized",
)
COMMISSION_ELIGIBLE = EligibilityCriterion(
    name="commission_eligible",
    attribute="commission_eligible",
    op=operator.eq,
    value=True,
    message="Commission is not eligible yet",
)
NOT_PAYOUT_REQUESTED = EligibilityCriterion(
    name="payout_requested",
    attribute="payout_requested",
    op=operator.eq,
    value=False,
    message="Payout already requested for this referral",
)
UNCLAIMED_COMMISSION = EligibilityCriterion(
    name="unclaimed_commission",
    attribute="unclaimed_commission",
    op=operator.gt,
    value=Decimal("0"),
    message="No unclaimed commission on this referral",
)

ELIGIBILITY_CRITERIA = (
    STATUS_FULLY_PAID,
    COMMISSION_ELIGIBLE,
    NOT_PAYOUT_REQUESTED,
    UNCLAIMED_COMMISSION,
)


def eligible_for_payout_clause():
    """SQL filter selecting claimable referrals."""
    return and_(*(criterion.clause() for criterion in ELIGIBILITY_CRITERIA))


def failed_criteria(referral: Referral) -> List[EligibilityCriterion]:
    """Criteria the referral does not currently meet, in declaration order."""
    return [c for c in ELIGIBILITY_CRITERIA if not c.holds_for(referral)]


def is_eligible_for_payout(referral: Referral) -> bool:
    return not failed_criteria(referral)


@dataclass
class EligibleReferrals:
    referrals: List[Referral] = field(default_factory=list)

    @property
    def total_eligible(self) -> int:
        return len(self.referrals)

    @property
    def available_for_payout(self) -> Decimal:
        return sum((r.unclaimed_commission for r in self.referrals), Decimal("0.00"))


class EligibilityService:
    """Read-side view of what a partner can claim right now."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_eligible(self, partner_id: uuid.UUID) -> EligibleReferrals:
        result = await self.db.execute(
            select(Referral)
            .where(
                Referral.partner_id == partner_id,
                eligible_for_payout_clause(),
            )
            .order_by(Referral.created_at.desc())
        )
        return EligibleReferrals(referrals=list(result.scalars().all()))

    async def _sum_payouts(self, partner_id: uuid.UUID, statuses: List[str]) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(PartnerPayout.amount), 0))
            .where(
                PartnerPayout.partner_id == partner_id,
                PartnerPayout.status.in_(statuses),
            )
        )
        return Decimal(str(result.scalar())).quantize(Decimal("0.01"))

    async def get_commission_summary(self, partner_id: uuid.UUID) -> dict:
        """
        Earned commission split into buckets for a partner.

        For every referral that is not lost, earned commission equals
        available + pending + requested + paid out:

            available   unclaimed commission on claimable referrals
            pending     unclaimed commission not yet claimable
            requested   held by pending or processing payouts
            paid out    held by paid payouts
        """
        result = await self.db.execute(
            select(Referral)
            .where(Referral.partner_id == partner_id)
            .order_by(Referral.created_at.desc())
        )
        referrals = result.scalars().all()

        total_earned = Decimal("0.00")
        available = Decimal("0.00")
        pending = Decimal("0.00")
        breakdown = []

        for referral in referrals:
            commission = referral.total_commission_earned
            unclaimed = referral.unclaimed_commission
            total_earned += commission

            if is_eligible_for_payout(referral):
                available += unclaimed
            elif unclaimed > 0 and referral.status != ReferralStatus.LOST.value:
                # Lost deals never become claimable
                pending += unclaimed

            breakdown.append({
                "id": referral.id,
                "referral_code": referral.referral_code,
                "prospect_company_name": referral.prospect_company_name,
                "status": referral.status,
                "total_deal_value": referral.total_deal_value,
                "commission_earned": commission,
                "commission_claimed": referral.total_commission_claimed,
                "commission_eligible": referral.commission_eligible,
                "payout_requested": referral.payout_requested,
            })

        requested = await self._sum_payouts(partner_id, PayoutStatus.active())
        total_paid_out = await self._sum_payouts(partner_id, [PayoutStatus.PAID.value])

        return {
            "total_commission_earned": total_earned,
            "available_for_payout": available,
            "pending_commission": pending,
            "requested_commission": requested,
            "total_paid_out": total_paid_out,
            "commission_rate": settings.COMMISSION_RATE,
            "can_request_payout": available > 0,
            "breakdown": breakdown,
        }
