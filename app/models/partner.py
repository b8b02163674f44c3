"""Referral partner model.

Partners sign up through the external identity provider; this table holds
their profile, status and the bank account commission payouts are sent to.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType

if TYPE_CHECKING:
    from app.models.referral import Referral
    from app.models.payout import PartnerPayout


class PartnerStatus(str, Enum):
    """Partner account status."""
    PENDING = "pending"        # Signed up, awaiting approval
    ACTIVE = "active"          # Can submit referrals
    SUSPENDED = "suspended"    # Temporarily blocked


class Partner(Base):
    """A partner who refers prospects and earns commission on their deals."""
    __tablename__ = "partners"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    company_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=PartnerStatus.PENDING.value,
        nullable=False,
        comment="pending, active, suspended"
    )

    # Payout destination (Paystack bank code + NUBAN)
    bank_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    bank_account_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    bank_account_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    referrals: Mapped[List["Referral"]] = relationship("Referral", back_populates="partner")
    payouts: Mapped[List["PartnerPayout"]] = relationship("PartnerPayout", back_populates="partner")

    @property
    def is_active(self) -> bool:
        return self.status == PartnerStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<Partner(email='{self.email}', status='{self.status}')>"
