"""
Payment Service

Records confirmed client payments and credits the referral's running totals.
The payment insert and the totals update are committed together, and the
commission is computed once, at recording time, at the rate then in force.
"""

import logging
import time
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import InvalidArgumentError, NotFoundError
from app.database import commit_or_conflict
from app.models.internal_user import InternalUser
from app.models.lead import Lead, LeadActivityType
from app.models.payment import ClientPayment, PaymentStatus
from app.models.referral import Referral
from app.schemas.payment import PaymentCreate, PaymentUpdate
from app.services.audit_service import AuditService
from app.services.commission_calculator import calculate_commission, normalize_amount
from app.services.lead_service import LeadService
from app.services.referral_service import ReferralService


logger = logging.getLogger(__name__)


def _payment_snapshot(payment: ClientPayment) -> dict:
    return {
        "amount": str(payment.amount),
        "commission_calculated": str(payment.commission_calculated),
        "commission_rate": str(payment.commission_rate),
        "payment_date": payment.payment_date.isoformat() if payment.payment_date else None,
        "payment_method": payment.payment_method,
        "transaction_reference": payment.transaction_reference,
        "notes": payment.notes,
    }


class PaymentService:
    """Service for client payment recording"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.leads = LeadService(db)
        self.referrals = ReferralService(db)
        self.audit = AuditService(db)

    async def get_payment(self, payment_id: uuid.UUID) -> ClientPayment:
        result = await self.db.execute(select(ClientPayment).where(ClientPayment.id == payment_id))
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    async def _resolve_targets(
        self,
        referral_id: Optional[uuid.UUID],
        lead_id: Optional[uuid.UUID],
    ) -> Tuple[Optional[Referral], Optional[Lead]]:
        """Referral and lead a payment is attributed to."""
        if not referral_id and not lead_id:
            raise InvalidArgumentError(
                "Either referral_id or lead_id is required",
                errors=["referral_id: either referral_id or lead_id is required"],
            )

        lead: Optional[Lead] = None
        if lead_id:
            lead = await self.leads.get_lead(lead_id)

        if referral_id and lead and lead.referral_id and lead.referral_id != referral_id:
            raise InvalidArgumentError(
                "Lead belongs to a different referral",
                errors=["lead_id: lead is linked to a different referral"],
            )

        # A lead that came from a referral credits that referral
        effective_referral_id = referral_id or (lead.referral_id if lead else None)

        referral: Optional[Referral] = None
        if effective_referral_id:
            referral = await self.referrals.get_referral(effective_referral_id)
            if lead is None:
                lead = await self.leads.get_lead_for_referral(referral.id)

        return referral, lead

    async def record_payment(self, data: PaymentCreate, user: InternalUser) -> Tuple[ClientPayment, Optional[Referral]]:
        """
        Record a confirmed client payment.

        Flow:
        1. Validate amount > 0 and at least one of referral/lead
        2. Resolve referral (directly or through the lead)
        3. Compute commission once at the current rate
        4. Insert payment and bump referral totals in one commit
        5. Lead activity (same commit), audit (best-effort)
        """
        amount = normalize_amount(data.amount)
        if amount <= 0:
            raise InvalidArgumentError("Amount must be greater than 0", field="amount")

        referral, lead = await self._resolve_targets(data.referral_id, data.lead_id)

        rate = settings.COMMISSION_RATE
        commission = calculate_commission(amount, rate)

        payment = ClientPayment(
            id=uuid.uuid4(),
            referral_id=referral.id if referral else None,
            lead_id=lead.id if lead else None,
            amount=amount,
            commission_rate=rate,
            commission_calculated=commission,
            payment_date=data.payment_date or date.today(),
            payment_method=data.payment_method.value,
            transaction_reference=data.transaction_reference or f"PAY-{int(time.time() * 1000)}",
            status=PaymentStatus.CONFIRMED.value,
            notes=data.notes,
            recorded_by=user.id,
        )
        self.db.add(payment)

        old_totals = None
        if referral:
            old_totals = referral.snapshot()
            referral.total_deal_value = (referral.total_deal_value or Decimal("0")) + amount
            referral.total_commission_earned = (referral.total_commission_earned or Decimal("0")) + commission

        if lead:
            self.leads.add_activity(
                lead,
                LeadActivityType.PAYMENT_RECEIVED.value,
                "Payment received",
                description=(
                    f"Payment of ₦{amount:,.2f} received "
                    f"({payment.payment_method}, ref {payment.transaction_reference}). "
                    f"Commission: ₦{commission:,.2f}"
                ),
                created_by_id=user.id,
            )

        await commit_or_conflict(self.db, "Referral" if referral else "Payment")

        logger.info(
            f"Payment {payment.id} recorded: amount={amount} commission={commission}"
            f"{' referral=' + referral.referral_code if referral else ''}"
        )

        await self.audit.log_best_effort(
            action="CREATE",
            entity_type="PAYMENT",
            entity_id=payment.id,
            actor_id=user.id,
            actor_type="internal",
            new_values=_payment_snapshot(payment),
            description=f"Payment recorded: ₦{amount:,.2f}",
        )
        if referral:
            await self.audit.log_best_effort(
                action="UPDATE",
                entity_type="REFERRAL",
                entity_id=referral.id,
                actor_id=user.id,
                actor_type="internal",
                old_values=old_totals,
                new_values=referral.snapshot(),
                description=f"Totals credited by payment {payment.id}",
            )

        return payment, referral

    async def update_payment(
        self,
        payment_id: uuid.UUID,
        changes: PaymentUpdate,
        user: InternalUser,
    ) -> Tuple[ClientPayment, Optional[Referral]]:
        """
        Correct a recorded payment.

        Amount corrections may only go up. The commission is recomputed at
        the rate stored on the payment and the difference credited to the
        referral, so its total stays equal to the sum over its payments. Any
        extra commission is unclaimed and becomes claimable alongside the
        rest once no payout is in flight.
        """
        fields = changes.model_dump(exclude_unset=True)
        if not fields:
            raise InvalidArgumentError("No fields to update")

        for key in ("payment_date", "payment_method", "transaction_reference"):
            if key in fields and fields[key] is None:
                raise InvalidArgumentError("Field cannot be cleared", field=key)

        payment = await self.get_payment(payment_id)
        referral: Optional[Referral] = None
        if payment.referral_id:
            referral = await self.referrals.get_referral(payment.referral_id)

        old_values = _payment_snapshot(payment)
        old_totals = referral.snapshot() if referral else None

        if "amount" in fields:
            if fields["amount"] is None:
                raise InvalidArgumentError("Field cannot be cleared", field="amount")
            new_amount = normalize_amount(fields["amount"])
            if new_amount <= 0:
                raise InvalidArgumentError("Amount must be greater than 0", field="amount")
            if new_amount < payment.amount:
                raise InvalidArgumentError(
                    "Payment amount can only be corrected upward; earned commission never decreases",
                    field="amount",
                )
            if new_amount != payment.amount:
                new_commission = calculate_commission(new_amount, payment.commission_rate)
                amount_delta = new_amount - payment.amount
                commission_delta = new_commission - payment.commission_calculated

                payment.amount = new_amount
                payment.commission_calculated = new_commission
                if referral:
                    referral.total_deal_value += amount_delta
                    referral.total_commission_earned += commission_delta

        if "payment_date" in fields:
            payment.payment_date = fields["payment_date"]
        if "payment_method" in fields:
            payment.payment_method = fields["payment_method"].value
        if "transaction_reference" in fields:
            payment.transaction_reference = fields["transaction_reference"]
        if "notes" in fields:
            payment.notes = fields["notes"]

        await commit_or_conflict(self.db, "Referral" if referral else "Payment")
        logger.info(f"Payment {payment.id} updated: {', '.join(fields)}")

        await self.audit.log_best_effort(
            action="UPDATE",
            entity_type="PAYMENT",
            entity_id=payment.id,
            actor_id=user.id,
            actor_type="internal",
            old_values=old_values,
            new_values=_payment_snapshot(payment),
            description=f"Payment updated: {', '.join(fields)}",
        )
        if referral and old_totals != referral.snapshot():
            await self.audit.log_best_effort(
                action="UPDATE",
                entity_type="REFERRAL",
                entity_id=referral.id,
                actor_id=user.id,
                actor_type="internal",
                old_values=old_totals,
                new_values=referral.snapshot(),
                description=f"Totals adjusted by payment correction {payment.id}",
            )

        return payment, referral
