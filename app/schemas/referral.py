"""
Pydantic schemas for referrals, deals and leads.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.base import BaseResponseSchema, BaseCreateSchema


# ============================================================================
# Requests
# ============================================================================

class ReferralCreate(BaseCreateSchema):
    """Partner submits a prospect."""
    prospect_company_name: str = Field(..., min_length=1, max_length=200)
    contact_name: str = Field(..., min_length=1, max_length=200)
    contact_email: EmailStr
    contact_phone: str = Field(..., pattern=r"^\+?[0-9][0-9\s\-]{6,18}$", description="Phone number")
    industry: Optional[str] = Field(None, max_length=100)
    estimated_deal_value: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None

    @field_validator("prospect_company_name", "contact_name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ReferralStatusUpdate(BaseModel):
    """Staff moves a referral along the pipeline."""
    # Checked against ReferralStatus by the state machine
    status: str
    notes: Optional[str] = None


class FinalizeDealRequest(BaseModel):
    notes: Optional[str] = None


# ============================================================================
# Responses
# ============================================================================

class PartnerSummary(BaseResponseSchema):
    id: UUID
    full_name: str
    email: str
    company_name: Optional[str] = None


class ReferralResponse(BaseResponseSchema):
    id: UUID
    referral_code: str
    partner_id: UUID
    prospect_company_name: str
    contact_name: str
    contact_email: str
    contact_phone: str
    industry: Optional[str] = None
    notes: Optional[str] = None
    status: str
    estimated_deal_value: Optional[Decimal] = None
    total_deal_value: Decimal
    total_commission_earned: Decimal
    total_commission_claimed: Decimal
    commission_eligible: bool
    payout_requested: bool
    payout_requested_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ReferralCreatedResponse(BaseModel):
    referral: ReferralResponse
    shareable_link: str


class ReferralLookupResponse(BaseModel):
    referral: ReferralResponse
    partner: PartnerSummary

