from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Partner referrals
    referrals,
    # Sales pipeline
    leads,
    payments,
    # Commission & payouts
    commissions,
    payouts,
    banks,
)
from app.schemas.base import ErrorResponse


# Every failure uses the same envelope, see the exception handlers in app.main
ERROR_RESPONSES = {
    code: {"model": ErrorResponse}
    for code in (400, 401, 403, 404, 409, 500, 502)
}

api_router = APIRouter(prefix="/api/v1", responses=ERROR_RESPONSES)

# ==================== Referrals ====================
api_router.include_router(referrals.router)

# ==================== Leads & Deals ====================
api_router.include_router(leads.router)

# ==================== Client Payments ====================
api_router.include_router(payments.router)

# ==================== Commissions ====================
api_router.include_router(commissions.router)

# ==================== Payouts ====================
api_router.include_router(payouts.router)

# ==================== Banks (Paystack) ====================
api_router.include_router(banks.router)
