"""Bank lookups backed by Paystack (internal staff)."""

from typing import List

from fastapi import APIRouter, Query

from app.api.deps import Banks, CurrentInternalUser
from app.schemas.base import ApiResponse
from app.schemas.payout import BankResponse, BankAccountVerification


router = APIRouter(prefix="/banks", tags=["Banks"])


@router.get("", response_model=ApiResponse[List[BankResponse]])
async def list_banks(user: CurrentInternalUser, banks: Banks):
    bank_list = await banks.get_bank_list()
    return ApiResponse(data=[BankResponse(code=str(b["code"]), name=b["name"]) for b in bank_list])


@router.get("/resolve/{bank_code}", response_model=ApiResponse[BankResponse])
async def resolve_bank(bank_code: str, user: CurrentInternalUser, banks: Banks):
    """Bank name for a bank code. 404 if the code is unknown."""
    name = await banks.resolve_bank_name(bank_code)
    return ApiResponse(data=BankResponse(code=bank_code, name=name))


@router.get("/verify", response_model=ApiResponse[BankAccountVerification])
async def verify_account(
    user: CurrentInternalUser,
    banks: Banks,
    account_number: str = Query(..., description="10-digit NUBAN"),
    bank_code: str = Query(...),
):
    result = await banks.verify_account(account_number, bank_code)
    return ApiResponse(data=BankAccountVerification(**result))
