from typing import Annotated, Optional
import uuid
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.core.security import verify_access_token, USER_TYPE_PARTNER, USER_TYPE_INTERNAL
from app.models.internal_user import InternalUser
from app.models.partner import Partner, PartnerStatus
from app.services.bank_service import BankService


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer()


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode_subject(token: str, expected_user_type: str) -> uuid.UUID:
    verified = verify_access_token(token)
    if verified is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise _credentials_exception()

    subject, user_type = verified
    if user_type != expected_user_type:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"{expected_user_type.capitalize()} access required",
        )

    try:
        return uuid.UUID(subject)
    except ValueError:
        logger.warning(f"Invalid subject in token: {subject}")
        raise _credentials_exception()


async def get_current_partner(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Partner:
    """
    Dependency to get the authenticated partner.
    Suspended partners are refused; pending partners may sign in but
    services decide what they can do.
    """
    partner_id = _decode_subject(credentials.credentials, USER_TYPE_PARTNER)

    result = await db.execute(select(Partner).where(Partner.id == partner_id))
    partner = result.scalar_one_or_none()

    if partner is None:
        logger.warning(f"Partner {partner_id} not found")
        raise _credentials_exception()

    if partner.status == PartnerStatus.SUSPENDED.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Partner account is suspended"
        )

    return partner


async def get_current_internal_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InternalUser:
    """Dependency to get the authenticated internal staff member."""
    user_id = _decode_subject(credentials.credentials, USER_TYPE_INTERNAL)

    result = await db.execute(select(InternalUser).where(InternalUser.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        logger.warning(f"Internal user {user_id} not found")
        raise _credentials_exception()

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated"
        )

    return user


def get_bank_service() -> BankService:
    """Bank lookup collaborator. Overridden in tests."""
    return BankService()


# Type aliases for cleaner dependency injection
DB = Annotated[AsyncSession, Depends(get_db)]
CurrentPartner = Annotated[Partner, Depends(get_current_partner)]
CurrentInternalUser = Annotated[InternalUser, Depends(get_current_internal_user)]
Banks = Annotated[BankService, Depends(get_bank_service)]
