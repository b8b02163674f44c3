"""Pydantic schemas for leads and deal conversion."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.schemas.base import BaseResponseSchema, BaseCreateSchema
from app.schemas.referral import ReferralResponse


class LeadCreate(BaseCreateSchema):
    """Staff creates a lead, optionally from a partner's referral code."""
    company_name: str = Field(..., min_length=1, max_length=200)
    contact_name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    referral_code: Optional[str] = None
    deal_value: Optional[Decimal] = Field(None, ge=0)


class ConvertLeadRequest(BaseModel):
    final_deal_value: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class LeadResponse(BaseResponseSchema):
    id: UUID
    referral_id: Optional[UUID] = None
    company_name: str
    contact_name: Optional[str] = None
    status: str
    deal_value: Optional[Decimal] = None
    converted_at: Optional[datetime] = None
    created_at: datetime


class LeadConvertedResponse(BaseModel):
    lead: LeadResponse
    referral: Optional[ReferralResponse] = None
