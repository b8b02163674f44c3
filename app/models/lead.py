"""Lead models.

A lead is the internal tracking record for pursuing a prospect. Leads that
came in through a partner are linked one-to-one with their referral, and
their status follows the referral's terminal transitions.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, MoneyType

if TYPE_CHECKING:
    from app.models.referral import Referral


class LeadStatus(str, Enum):
    """Lead status."""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    CONVERTED = "converted"
    LOST = "lost"


class LeadActivityType(str, Enum):
    """Lead activity type."""
    NOTE = "note"
    STATUS_CHANGE = "status_change"
    REFERRAL_STATUS_UPDATED = "referral_status_updated"
    PAYMENT_RECEIVED = "payment_received"
    DEAL_CONVERTED = "deal_converted"
    DEAL_FINALIZED = "deal_finalized"


class Lead(Base):
    """Internal tracking record for a prospect."""
    __tablename__ = "leads"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # Set when the lead came from a partner referral
    referral_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("referrals.id", ondelete="SET NULL"),
        nullable=True,
        unique=True
    )

    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=LeadStatus.NEW.value,
        nullable=False,
        index=True,
        comment="new, contacted, qualified, converted, lost"
    )

    deal_value: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)
    converted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

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
    referral: Mapped[Optional["Referral"]] = relationship("Referral", back_populates="lead")
    activities: Mapped[List["LeadActivity"]] = relationship(
        "LeadActivity",
        back_populates="lead",
        cascade="all, delete-orphan",
        order_by="LeadActivity.created_at"
    )

    def __repr__(self) -> str:
        return f"<Lead(company='{self.company_name}', status='{self.status}')>"


class LeadActivity(Base):
    """Activity log entry on a lead."""
    __tablename__ = "lead_activities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    lead_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # For status changes
    old_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    new_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("internal_users.id", ondelete="SET NULL"),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    lead: Mapped["Lead"] = relationship("Lead", back_populates="activities")

    def __repr__(self) -> str:
        return f"<LeadActivity(type='{self.activity_type}', subject='{self.subject}')>"
