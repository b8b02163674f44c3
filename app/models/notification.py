"""Database model for in-app notifications."""
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey, Index

from app.database import Base
from app.db_types import UUIDType, JSONType


class NotificationType(str, Enum):
    """Types of notifications."""
    PAYOUT_REQUESTED = "payout_requested"
    PAYOUT_PROCESSING = "payout_processing"
    PAYOUT_PROCESSED = "payout_processed"
    PAYOUT_FAILED = "payout_failed"


class RecipientType(str, Enum):
    """Who a notification is for."""
    PARTNER = "partner"
    INTERNAL = "internal"    # All internal staff


class Notification(Base):
    """
    Notification model - partner-facing and staff-facing alerts.
    """
    __tablename__ = "notifications"

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid4)

    # Recipient
    recipient_type = Column(String(20), nullable=False, comment="partner, internal")
    partner_id = Column(UUIDType(as_uuid=True), ForeignKey("partners.id", ondelete="CASCADE"), index=True)

    # Notification content
    notification_type = Column(String(50), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)

    # Reference to related entity
    entity_type = Column(String(50))  # e.g., "payout", "referral"
    entity_id = Column(UUIDType(as_uuid=True))

    extra_data = Column(JSONType, default=dict)

    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        Index('ix_notifications_recipient_unread', 'recipient_type', 'is_read'),
    )
