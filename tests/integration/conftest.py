"""
Shared fixtures for service-level tests.

Builds referrals in the states the payout flows start from:
- referral: fresh, code_sent, nothing earned
- finalized_referral: 100,000 paid, 5,000 earned, fully_paid
"""

from decimal import Decimal

import pytest_asyncio

from app.schemas.payment import PaymentCreate
from app.schemas.referral import ReferralCreate
from app.services.payment_service import PaymentService
from app.services.referral_service import ReferralService


@pytest_asyncio.fixture
async def referral(db, partner, referral_payload):
    created, _ = await ReferralService(db).create_referral(partner, ReferralCreate(**referral_payload))
    return created


@pytest_asyncio.fixture
async def earning_referral(db, referral, staff):
    """Referral with a confirmed 100,000 payment, not yet finalized."""
    await PaymentService(db).record_payment(
        PaymentCreate(referral_id=referral.id, amount=Decimal("100000")),
        staff,
    )
    return referral


@pytest_asyncio.fixture
async def finalized_referral(db, earning_referral, staff):
    return await ReferralService(db).finalize_deal(earning_referral.id, staff)
