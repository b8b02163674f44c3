"""
Pydantic schemas for payouts and commission views.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel

from app.schemas.base import BaseResponseSchema, BaseCreateSchema


# ============================================================================
# Requests
# ============================================================================

class PayoutRequest(BaseCreateSchema):
    """Partner claims a referral's commission. Amount defaults to the unclaimed balance."""
    referral_id: UUID
    amount: Optional[Decimal] = None


class PayoutCancelRequest(BaseModel):
    notes: Optional[str] = None


# ============================================================================
# Responses
# ============================================================================

class PayoutResponse(BaseResponseSchema):
    id: UUID
    partner_id: UUID
    referral_id: UUID
    amount: Decimal
    amount_paid: Optional[Decimal] = None
    status: str
    requested_at: datetime
    processed_at: Optional[datetime] = None
    processed_by: Optional[UUID] = None
    payment_reference: Optional[str] = None
    proof_of_payment_url: Optional[str] = None
    notes: Optional[str] = None


class PayoutBankDetails(BaseModel):
    bank_code: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None


class PayoutDetailResponse(BaseModel):
    payout: PayoutResponse
    referral_code: str
    prospect_company_name: str
    partner_name: str
    partner_email: str
    bank: PayoutBankDetails


class EligibleReferral(BaseResponseSchema):
    id: UUID
    referral_code: str
    prospect_company_name: str
    total_commission_earned: Decimal
    unclaimed_commission: Decimal
    created_at: datetime


class EligibleReferralsResponse(BaseModel):
    referrals: List[EligibleReferral]
    total_eligible: int
    available_for_payout: Decimal


class CommissionBreakdownItem(BaseModel):
    id: UUID
    referral_code: str
    prospect_company_name: str
    status: str
    total_deal_value: Decimal
    commission_earned: Decimal
    commission_claimed: Decimal
    commission_eligible: bool
    payout_requested: bool


class CommissionSummaryResponse(BaseModel):
    total_commission_earned: Decimal
    available_for_payout: Decimal
    pending_commission: Decimal
    requested_commission: Decimal
    total_paid_out: Decimal
    commission_rate: Decimal
    can_request_payout: bool
    breakdown: List[CommissionBreakdownItem]


class BankResponse(BaseModel):
    code: str
    name: str


class BankAccountVerification(BaseModel):
    account_name: Optional[str] = None
    account_number: str
    bank_code: str
