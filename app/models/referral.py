"""Referral model.

A referral is a prospect submitted by a partner. Staff move it through the
sales pipeline; confirmed client payments accumulate into its running totals,
and once the deal is finalized its commission becomes claimable.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, Index, CheckConstraint
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, MoneyType

if TYPE_CHECKING:
    from app.models.partner import Partner
    from app.models.lead import Lead
    from app.models.payment import ClientPayment
    from app.models.payout import PartnerPayout


class ReferralStatus(str, Enum):
    """Referral pipeline status."""
    CODE_SENT = "code_sent"                  # Initial - code shared with prospect
    CONTACTED = "contacted"
    MEETING_SCHEDULED = "meeting_scheduled"
    PROPOSAL_SENT = "proposal_sent"
    NEGOTIATION = "negotiation"
    WON = "won"
    FULLY_PAID = "fully_paid"                # Terminal - commission eligible
    LOST = "lost"                            # Terminal - never eligible

    @classmethod
    def values(cls) -> List[str]:
        return [s.value for s in cls]


class Referral(Base):
    """Partner-submitted prospect tracked through the sales pipeline."""
    __tablename__ = "referrals"
    __table_args__ = (
        Index('ix_referrals_partner_status', 'partner_id', 'status'),
        CheckConstraint(
            'total_commission_claimed >= 0 AND total_commission_claimed <= total_commission_earned',
            name='ck_referrals_claimed_within_earned',
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # Immutable human-readable code (e.g., CRYPT-AB12CD)
    referral_code: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True
    )

    partner_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("partners.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # Prospect
    prospect_company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_name: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str] = mapped_column(String(20), nullable=False)
    industry: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(30),
        default=ReferralStatus.CODE_SENT.value,
        nullable=False,
        index=True
    )

    # Partner-entered, advisory only
    estimated_deal_value: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)

    # Running totals over confirmed payments
    total_deal_value: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"), nullable=False)
    total_commission_earned: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"), nullable=False)

    # Commission tied up in pending, processing or paid payouts
    total_commission_claimed: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"), nullable=False)

    # Denormalized flags maintained by finalize / payout operations.
    # payout_requested is true while a payout is pending or processing.
    commission_eligible: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payout_requested: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payout_requested_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    finalized_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Optimistic lock; a stale UPDATE raises StaleDataError
    version: Mapped[int] = mapped_column(Integer, nullable=False)

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

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    partner: Mapped["Partner"] = relationship("Partner", back_populates="referrals")
    lead: Mapped[Optional["Lead"]] = relationship("Lead", back_populates="referral", uselist=False)
    payments: Mapped[List["ClientPayment"]] = relationship("ClientPayment", back_populates="referral")
    payouts: Mapped[List["PartnerPayout"]] = relationship("PartnerPayout", back_populates="referral")

    @hybrid_property
    def unclaimed_commission(self) -> Decimal:
        """Earned commission a new payout may still claim. Works in SQL too."""
        return self.total_commission_earned - self.total_commission_claimed

    def snapshot(self) -> dict:
        """State captured in audit records."""
        return {
            "status": self.status,
            "total_deal_value": str(self.total_deal_value),
            "total_commission_earned": str(self.total_commission_earned),
            "total_commission_claimed": str(self.total_commission_claimed),
            "commission_eligible": self.commission_eligible,
            "payout_requested": self.payout_requested,
        }

    def __repr__(self) -> str:
        return f"<Referral(code='{self.referral_code}', status='{self.status}')>"
