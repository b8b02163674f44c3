"""Partner payout model.

A payout is the request-and-settlement record for paying some or all of a
referral's unclaimed commission to the partner. A referral may collect
several payouts over time, but at most one may be pending or processing;
the partial unique index below enforces that at the database level.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, MoneyType

if TYPE_CHECKING:
    from app.models.partner import Partner
    from app.models.referral import Referral


class PayoutStatus(str, Enum):
    """Payout status."""
    PENDING = "pending"          # Requested by partner
    PROCESSING = "processing"    # Transfer in progress
    PAID = "paid"                # Terminal - settled
    FAILED = "failed"            # Terminal - transfer failed
    CANCELLED = "cancelled"      # Terminal - withdrawn by partner

    @classmethod
    def active(cls) -> List[str]:
        return [cls.PENDING.value, cls.PROCESSING.value]


ACTIVE_PAYOUT_PREDICATE = "status IN ('pending', 'processing')"
PAYMENT_REFERENCE_MAX_LENGTH = 100


class PartnerPayout(Base):
    """Commission payout against a single referral."""
    __tablename__ = "partner_payouts"
    __table_args__ = (
        Index(
            'uq_partner_payouts_active_referral',
            'referral_id',
            unique=True,
            postgresql_where=text(ACTIVE_PAYOUT_PREDICATE),
            sqlite_where=text(ACTIVE_PAYOUT_PREDICATE),
        ),
        Index('ix_partner_payouts_partner_status', 'partner_id', 'status'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    partner_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("partners.id", ondelete="RESTRICT"),
        nullable=False
    )
    referral_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("referrals.id", ondelete="RESTRICT"),
        nullable=False
    )

    # Fixed at request time, never above the referral's unclaimed commission
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    # What was actually transferred, when staff record it
    amount_paid: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=PayoutStatus.PENDING.value,
        nullable=False,
        comment="pending, processing, paid, failed, cancelled"
    )

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("internal_users.id", ondelete="SET NULL"),
        nullable=True
    )

    payment_reference: Mapped[Optional[str]] = mapped_column(String(PAYMENT_REFERENCE_MAX_LENGTH), nullable=True)
    proof_of_payment_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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
    partner: Mapped["Partner"] = relationship("Partner", back_populates="payouts")
    referral: Mapped["Referral"] = relationship("Referral", back_populates="payouts")

    def snapshot(self) -> dict:
        """State captured in audit records."""
        return {
            "status": self.status,
            "amount": str(self.amount),
            "amount_paid": str(self.amount_paid) if self.amount_paid is not None else None,
            "payment_reference": self.payment_reference,
            "proof_of_payment_url": self.proof_of_payment_url,
        }

    def __repr__(self) -> str:
        return f"<PartnerPayout(amount={self.amount}, status='{self.status}')>"
