"""
Client Payment API Endpoints (internal staff)

Recording a payment computes its commission and credits the referral.
"""

from uuid import UUID

from fastapi import APIRouter, status

from app.api.deps import DB, CurrentInternalUser
from app.schemas.base import ApiResponse
from app.schemas.payment import (
    PaymentCreate,
    PaymentUpdate,
    PaymentResponse,
    PaymentRecordedResponse,
    ReferralTotals,
)
from app.services.payment_service import PaymentService


router = APIRouter(prefix="/payments", tags=["Payments"])


def _recorded(payment, referral) -> PaymentRecordedResponse:
    return PaymentRecordedResponse(
        payment=PaymentResponse.model_validate(payment),
        referral=ReferralTotals(
            referral_id=referral.id,
            total_deal_value=referral.total_deal_value,
            total_commission_earned=referral.total_commission_earned,
        ) if referral else None,
    )


@router.post(
    "",
    response_model=ApiResponse[PaymentRecordedResponse],
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(data: PaymentCreate, db: DB, user: CurrentInternalUser):
    """Record a confirmed client payment against a referral or lead."""
    payment, referral = await PaymentService(db).record_payment(data, user)
    return ApiResponse(message="Payment recorded successfully", data=_recorded(payment, referral))


@router.patch("/{payment_id}", response_model=ApiResponse[PaymentRecordedResponse])
async def update_payment(
    payment_id: UUID,
    data: PaymentUpdate,
    db: DB,
    user: CurrentInternalUser,
):
    """Correct amount, date, method, reference or notes. Other fields are rejected."""
    payment, referral = await PaymentService(db).update_payment(payment_id, data, user)
    return ApiResponse(message="Payment updated successfully", data=_recorded(payment, referral))
