"""
Bank Lookup Service (Paystack)

- Nigerian bank list
- Bank code -> bank name resolution
- Account number verification (account name lookup)
"""
import logging
from typing import Optional, List, Dict, Any

import httpx

from app.config import settings
from app.core.exceptions import InvalidArgumentError, NotFoundError, UpstreamError


logger = logging.getLogger(__name__)


class BankService:
    """Thin async client over the Paystack bank endpoints."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        # Tests inject a client backed by httpx.MockTransport
        self._client = client

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {settings.PAYSTACK_SECRET_KEY}",
            "Content-Type": "application/json",
        }

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{settings.PAYSTACK_BASE_URL}{path}"
        try:
            if self._client is not None:
                response = await self._client.get(
                    url, params=params, headers=self._headers(), timeout=settings.PAYSTACK_TIMEOUT
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(
                        url, params=params, headers=self._headers(), timeout=settings.PAYSTACK_TIMEOUT
                    )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Paystack request to {path} failed: {e}")
            raise UpstreamError("Failed to connect to bank service")

        if response.status_code >= 400 or not data.get("status"):
            message = data.get("message") or "Bank service request failed"
            logger.warning(f"Paystack {path} error ({response.status_code}): {message}")
            raise UpstreamError(message)

        return data

    async def get_bank_list(self) -> List[Dict[str, Any]]:
        """Banks supported for payouts."""
        data = await self._get("/bank", {"country": "nigeria", "perPage": 100})
        banks = [
            {
                "id": bank.get("id"),
                "name": bank.get("name"),
                "code": bank.get("code"),
                "slug": bank.get("slug"),
            }
            for bank in data.get("data", [])
        ]
        logger.info(f"Retrieved {len(banks)} banks from Paystack")
        return banks

    async def resolve_bank_name(self, bank_code: str) -> str:
        """Bank name for a Paystack bank code. NotFoundError if unknown."""
        if not bank_code:
            raise InvalidArgumentError("Bank code is required", field="bank_code")

        for bank in await self.get_bank_list():
            if str(bank["code"]) == str(bank_code):
                return bank["name"]

        raise NotFoundError(f"Unknown bank code '{bank_code}'")

    async def bank_name_or_fallback(self, bank_code: Optional[str]) -> Optional[str]:
        """Decorative lookup for read paths: never raises."""
        if not bank_code:
            return None
        try:
            return await self.resolve_bank_name(bank_code)
        except (UpstreamError, NotFoundError, InvalidArgumentError) as e:
            logger.warning(f"Bank name lookup for {bank_code} failed: {e.message}")
            return f"Bank ({bank_code})"

    async def verify_account(self, account_number: str, bank_code: str) -> Dict[str, Any]:
        """Resolve the account holder's name for a NUBAN + bank code."""
        errors = []
        if not account_number or not account_number.isdigit() or len(account_number) != 10:
            errors.append("account_number: must be 10 digits")
        if not bank_code:
            errors.append("bank_code: is required")
        if errors:
            raise InvalidArgumentError("Invalid bank account details", errors=errors)

        data = await self._get(
            "/bank/resolve",
            {"account_number": account_number, "bank_code": bank_code},
        )
        result = data.get("data", {})
        return {
            "account_name": result.get("account_name"),
            "account_number": result.get("account_number", account_number),
            "bank_code": bank_code,
        }
