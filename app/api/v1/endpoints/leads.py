"""
Lead and Deal API Endpoints (internal staff)

- Create leads, optionally linked to a partner referral code
- Convert a lead into a customer (referral -> won)
- Finalize a converted lead's deal (referral -> fully_paid)
"""

from uuid import UUID

from fastapi import APIRouter, status

from app.api.deps import DB, CurrentInternalUser
from app.schemas.base import ApiResponse
from app.schemas.lead import LeadCreate, LeadResponse, ConvertLeadRequest, LeadConvertedResponse
from app.schemas.referral import ReferralResponse, FinalizeDealRequest
from app.services.lead_service import LeadService
from app.services.referral_service import ReferralService


router = APIRouter(tags=["Leads & Deals"])


# ==================== Leads ====================

@router.post(
    "/leads",
    response_model=ApiResponse[LeadResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_lead(data: LeadCreate, db: DB, user: CurrentInternalUser):
    """Create a new lead."""
    lead = await LeadService(db).create_lead(
        company_name=data.company_name,
        contact_name=data.contact_name,
        email=str(data.email) if data.email else None,
        phone=data.phone,
        user=user,
        referral_code=data.referral_code,
        deal_value=data.deal_value,
    )
    return ApiResponse(message="Lead created successfully", data=LeadResponse.model_validate(lead))


# ==================== Deals ====================

@router.patch("/deals/{lead_id}/convert", response_model=ApiResponse[LeadConvertedResponse])
async def convert_lead(
    lead_id: UUID,
    db: DB,
    user: CurrentInternalUser,
    data: ConvertLeadRequest | None = None,
):
    data = data or ConvertLeadRequest()
    lead, referral = await LeadService(db).convert_lead(
        lead_id, user, final_deal_value=data.final_deal_value, notes=data.notes
    )
    return ApiResponse(
        message="Lead successfully converted to customer",
        data=LeadConvertedResponse(
            lead=LeadResponse.model_validate(lead),
            referral=ReferralResponse.model_validate(referral) if referral else None,
        ),
    )


@router.patch("/deals/{lead_id}/finalize", response_model=ApiResponse[LeadConvertedResponse])
async def finalize_deal(
    lead_id: UUID,
    db: DB,
    user: CurrentInternalUser,
    data: FinalizeDealRequest | None = None,
):
    """Finalize a converted lead's deal; its referral's commission becomes claimable."""
    lead, referral = await ReferralService(db).finalize_deal_for_lead(
        lead_id, user, notes=data.notes if data else None
    )
    return ApiResponse(
        message="Deal finalized successfully",
        data=LeadConvertedResponse(
            lead=LeadResponse.model_validate(lead),
            referral=ReferralResponse.model_validate(referral),
        ),
    )
