"""
Notification Service

In-app notifications for the payout lifecycle:
- Internal staff are told when a partner requests a payout
- Partners are told when their payout is processed, settled or fails

Notifications are a best-effort side channel. A failed write is logged and
never fails the payout operation that triggered it.
"""
import logging
import uuid
from decimal import Decimal
from typing import Optional, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification, NotificationType, RecipientType
from app.models.payout import PartnerPayout, PayoutStatus
from app.models.referral import Referral
from app.services.audit_service import best_effort


logger = logging.getLogger(__name__)


def _naira(amount: Decimal) -> str:
    return f"₦{amount:,.2f}"


class NotificationService:
    """Creates in-app notifications."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        recipient_type: str,
        notification_type: str,
        title: str,
        message: str,
        partner_id: Optional[uuid.UUID] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(
            recipient_type=recipient_type,
            partner_id=partner_id,
            notification_type=notification_type,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
            extra_data=extra_data or {},
        )
        self.db.add(notification)
        await self.db.flush()

        logger.info(
            "Notification %s created for %s%s",
            notification_type,
            recipient_type,
            f" {partner_id}" if partner_id else "",
        )
        return notification

    async def notify_payout_requested(self, payout: PartnerPayout, referral: Referral, partner_name: str) -> bool:
        """Tell internal staff a partner is waiting on a payout."""
        return await best_effort(
            self.db,
            "payout_requested notification",
            lambda: self.create(
                recipient_type=RecipientType.INTERNAL.value,
                notification_type=NotificationType.PAYOUT_REQUESTED.value,
                title="New payout request",
                message=(
                    f"{partner_name} requested a payout of {_naira(payout.amount)} "
                    f"for {referral.prospect_company_name} ({referral.referral_code})."
                ),
                entity_type="payout",
                entity_id=payout.id,
                extra_data={
                    "referral_id": str(referral.id),
                    "referral_code": referral.referral_code,
                    "amount": str(payout.amount),
                },
            ),
        )

    async def notify_payout_status(self, payout: PartnerPayout) -> bool:
        """Tell the partner their payout moved to processing, paid or failed."""
        if payout.status == PayoutStatus.PAID.value:
            notification_type = NotificationType.PAYOUT_PROCESSED.value
            title = "Payout sent"
            message = (
                f"Your payout of {_naira(payout.amount_paid or payout.amount)} has been paid. "
                f"Reference: {payout.payment_reference}."
            )
        elif payout.status == PayoutStatus.FAILED.value:
            notification_type = NotificationType.PAYOUT_FAILED.value
            title = "Payout failed"
            message = (
                f"Your payout of {_naira(payout.amount)} could not be completed. "
                "The commission is available to request again."
            )
        else:
            notification_type = NotificationType.PAYOUT_PROCESSING.value
            title = "Payout processing"
            message = f"Your payout of {_naira(payout.amount)} is being processed."

        return await best_effort(
            self.db,
            f"{notification_type} notification",
            lambda: self.create(
                recipient_type=RecipientType.PARTNER.value,
                notification_type=notification_type,
                title=title,
                message=message,
                partner_id=payout.partner_id,
                entity_type="payout",
                entity_id=payout.id,
                extra_data={
                    "status": payout.status,
                    "payment_reference": payout.payment_reference,
                    "proof_of_payment_url": payout.proof_of_payment_url,
                },
            ),
        )
