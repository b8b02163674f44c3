"""Commission summary for the signed-in partner."""

from fastapi import APIRouter

from app.api.deps import DB, CurrentPartner
from app.schemas.base import ApiResponse
from app.schemas.payout import CommissionSummaryResponse
from app.services.eligibility import EligibilityService


router = APIRouter(prefix="/commissions", tags=["Commissions"])


@router.get("/summary", response_model=ApiResponse[CommissionSummaryResponse])
async def get_commission_summary(db: DB, partner: CurrentPartner):
    """
    Earned commission split into available, pending, requested and paid out.

    available_for_payout covers only referrals whose payout can be requested now.
    pending_commission is unclaimed commission that cannot be requested yet:
    deals not finalized, or a remainder behind a payout still in flight.
    requested_commission is held by pending or processing payouts.
    """
    summary = await EligibilityService(db).get_commission_summary(partner.id)
    return ApiResponse(data=CommissionSummaryResponse(**summary))
