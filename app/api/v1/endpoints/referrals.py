"""
Referral API Endpoints

- Partner creates a referral and receives its shareable code
- Staff look referrals up by code or id
- Staff move referrals through the pipeline and finalize deals
"""

from uuid import UUID

from fastapi import APIRouter, status

from app.api.deps import DB, CurrentPartner, CurrentInternalUser
from app.schemas.base import ApiResponse
from app.schemas.referral import (
    ReferralCreate,
    ReferralResponse,
    ReferralCreatedResponse,
    ReferralLookupResponse,
    ReferralStatusUpdate,
    FinalizeDealRequest,
    PartnerSummary,
)
from app.services.referral_service import ReferralService


router = APIRouter(prefix="/referrals", tags=["Referrals"])


@router.post(
    "",
    response_model=ApiResponse[ReferralCreatedResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_referral(data: ReferralCreate, db: DB, partner: CurrentPartner):
    """Create a referral and generate its PREFIX-XXXXXX code."""
    referral, link = await ReferralService(db).create_referral(partner, data)
    return ApiResponse(
        message="Referral created successfully",
        data=ReferralCreatedResponse(
            referral=ReferralResponse.model_validate(referral),
            shareable_link=link,
        ),
    )


@router.get("/code/{code}", response_model=ApiResponse[ReferralLookupResponse])
async def get_referral_by_code(code: str, db: DB, user: CurrentInternalUser):
    """Look a referral up by its code (case-insensitive)."""
    referral = await ReferralService(db).get_referral_by_code(code)
    return ApiResponse(
        data=ReferralLookupResponse(
            referral=ReferralResponse.model_validate(referral),
            partner=PartnerSummary.model_validate(referral.partner),
        ),
    )


@router.get("/{referral_id}", response_model=ApiResponse[ReferralResponse])
async def get_referral(referral_id: UUID, db: DB, user: CurrentInternalUser):
    referral = await ReferralService(db).get_referral(referral_id)
    return ApiResponse(data=ReferralResponse.model_validate(referral))


@router.patch("/{referral_id}/status", response_model=ApiResponse[ReferralResponse])
async def update_referral_status(
    referral_id: UUID,
    data: ReferralStatusUpdate,
    db: DB,
    user: CurrentInternalUser,
):
    """
    Move a referral through the pipeline.

    Linked leads are synced on won / fully_paid / lost.
    """
    referral = await ReferralService(db).transition_status(
        referral_id, data.status, user, notes=data.notes
    )
    return ApiResponse(
        message="Referral status updated successfully",
        data=ReferralResponse.model_validate(referral),
    )


@router.patch("/{referral_id}/finalize", response_model=ApiResponse[ReferralResponse])
async def finalize_referral(
    referral_id: UUID,
    db: DB,
    user: CurrentInternalUser,
    data: FinalizeDealRequest | None = None,
):
    """Mark the deal fully paid; the referral's commission becomes claimable."""
    referral = await ReferralService(db).finalize_deal(
        referral_id, user, notes=data.notes if data else None
    )
    return ApiResponse(
        message="Deal finalized successfully",
        data=ReferralResponse.model_validate(referral),
    )
