"""
Partner Payout API Endpoints

Partner:
- GET   /payouts/eligible          referrals whose commission can be claimed
- POST  /payouts/request           claim a referral's commission
- PATCH /payouts/{id}/cancel       withdraw a pending claim

Internal staff:
- GET   /payouts/{id}              payout with partner bank details
- PATCH /payouts/{id}/process      processing / paid / failed, with proof upload
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, UploadFile, status

from app.api.deps import DB, Banks, CurrentPartner, CurrentInternalUser
from app.models.payout import PAYMENT_REFERENCE_MAX_LENGTH
from app.schemas.base import ApiResponse
from app.schemas.payout import (
    PayoutRequest,
    PayoutCancelRequest,
    PayoutResponse,
    PayoutDetailResponse,
    EligibleReferral,
    EligibleReferralsResponse,
)
from app.services.eligibility import EligibilityService
from app.services.payout_service import PayoutService, ProofFile


router = APIRouter(prefix="/payouts", tags=["Payouts"])


# ==================== Partner ====================

@router.get("/eligible", response_model=ApiResponse[EligibleReferralsResponse])
async def list_eligible_referrals(db: DB, partner: CurrentPartner):
    eligible = await EligibilityService(db).list_eligible(partner.id)
    return ApiResponse(
        data=EligibleReferralsResponse(
            referrals=[EligibleReferral.model_validate(r) for r in eligible.referrals],
            total_eligible=eligible.total_eligible,
            available_for_payout=eligible.available_for_payout,
        ),
    )


@router.post(
    "/request",
    response_model=ApiResponse[PayoutResponse],
    status_code=status.HTTP_201_CREATED,
)
async def request_payout(data: PayoutRequest, db: DB, partner: CurrentPartner, banks: Banks):
    """Request payout of a finalized referral's commission."""
    payout = await PayoutService(db, banks).request_payout(partner, data.referral_id, amount=data.amount)
    return ApiResponse(
        message="Payout request submitted successfully",
        data=PayoutResponse.model_validate(payout),
    )


@router.patch("/{payout_id}/cancel", response_model=ApiResponse[PayoutResponse])
async def cancel_payout(
    payout_id: UUID,
    db: DB,
    partner: CurrentPartner,
    banks: Banks,
    data: PayoutCancelRequest | None = None,
):
    payout = await PayoutService(db, banks).cancel_payout(
        partner, payout_id, notes=data.notes if data else None
    )
    return ApiResponse(
        message="Payout request cancelled",
        data=PayoutResponse.model_validate(payout),
    )


# ==================== Internal ====================

@router.get("/{payout_id}", response_model=ApiResponse[PayoutDetailResponse])
async def get_payout(payout_id: UUID, db: DB, user: CurrentInternalUser, banks: Banks):
    detail = await PayoutService(db, banks).get_payout_detail(payout_id)
    detail["payout"] = PayoutResponse.model_validate(detail["payout"])
    return ApiResponse(data=PayoutDetailResponse(**detail))


@router.patch("/{payout_id}/process", response_model=ApiResponse[PayoutResponse])
async def process_payout(
    payout_id: UUID,
    db: DB,
    user: CurrentInternalUser,
    banks: Banks,
    status_value: str = Form(..., alias="status"),
    payment_reference: Optional[str] = Form(None, max_length=PAYMENT_REFERENCE_MAX_LENGTH),
    notes: Optional[str] = Form(None),
    amount_paid: Optional[Decimal] = Form(None),
    proof_of_payment: Optional[UploadFile] = File(None),
):
    """
    Process a payout.

    Multipart form: status (processing | paid | failed), payment_reference
    (required for paid, up to 100 characters), notes, amount_paid,
    proof_of_payment (JPEG, PNG, WebP or PDF up to 5MB).
    """
    proof = None
    if proof_of_payment is not None and proof_of_payment.filename:
        proof = ProofFile(
            content=await proof_of_payment.read(),
            filename=proof_of_payment.filename,
            content_type=proof_of_payment.content_type or "application/octet-stream",
        )

    payout = await PayoutService(db, banks).process_payout(
        payout_id,
        status_value,
        user,
        payment_reference=payment_reference,
        notes=notes,
        amount_paid=amount_paid,
        proof=proof,
    )
    return ApiResponse(
        message=f"Payout marked as {payout.status}",
        data=PayoutResponse.model_validate(payout),
    )
