"""Client payment model.

Each confirmed payment credits its referral exactly once with the commission
computed at recording time. The rate used is stored with the payment so a
later change to COMMISSION_RATE never touches existing rows.
"""
import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Date, DateTime, ForeignKey, Text, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, MoneyType

if TYPE_CHECKING:
    from app.models.referral import Referral
    from app.models.lead import Lead


class PaymentStatus(str, Enum):
    """Client payment status. Only CONFIRMED accrues commission."""
    CONFIRMED = "confirmed"


class PaymentMethod(str, Enum):
    """How the client paid."""
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    CASH = "cash"
    CHEQUE = "cheque"
    OTHER = "other"


class ClientPayment(Base):
    """Payment received from a referred client."""
    __tablename__ = "client_payments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # At least one of referral_id / lead_id is set
    referral_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("referrals.id", ondelete="RESTRICT"),
        nullable=True,
        index=True
    )
    lead_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("leads.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    commission_calculated: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[str] = mapped_column(
        String(30),
        default=PaymentMethod.BANK_TRANSFER.value,
        nullable=False
    )
    transaction_reference: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=PaymentStatus.CONFIRMED.value,
        nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    recorded_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("internal_users.id", ondelete="SET NULL"),
        nullable=True
    )

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
    referral: Mapped[Optional["Referral"]] = relationship("Referral", back_populates="payments")
    lead: Mapped[Optional["Lead"]] = relationship("Lead")

    def __repr__(self) -> str:
        return f"<ClientPayment(amount={self.amount}, commission={self.commission_calculated})>"
