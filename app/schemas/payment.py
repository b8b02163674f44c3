"""Pydantic schemas for client payments."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.payment import PaymentMethod
from app.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


class PaymentCreate(BaseCreateSchema):
    """Staff records a client payment. referral_id or lead_id is required."""
    referral_id: Optional[UUID] = None
    lead_id: Optional[UUID] = None
    amount: Decimal
    payment_date: Optional[date] = None
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    transaction_reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentUpdate(BaseUpdateSchema):
    """Correctable payment fields. Anything else is rejected."""
    amount: Optional[Decimal] = None
    payment_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    transaction_reference: Optional[str] = Field(None, min_length=1, max_length=100)
    notes: Optional[str] = None


class PaymentResponse(BaseResponseSchema):
    id: UUID
    referral_id: Optional[UUID] = None
    lead_id: Optional[UUID] = None
    amount: Decimal
    commission_rate: Decimal
    commission_calculated: Decimal
    payment_date: date
    payment_method: str
    transaction_reference: str
    status: str
    notes: Optional[str] = None
    created_at: datetime


class ReferralTotals(BaseModel):
    referral_id: UUID
    total_deal_value: Decimal
    total_commission_earned: Decimal


class PaymentRecordedResponse(BaseModel):
    payment: PaymentResponse
    referral: Optional[ReferralTotals] = None
