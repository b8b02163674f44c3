# Models module - importing here registers every table with Base.metadata
from app.models.partner import Partner, PartnerStatus
from app.models.internal_user import InternalUser
from app.models.referral import Referral, ReferralStatus
from app.models.lead import Lead, LeadActivity, LeadStatus, LeadActivityType
from app.models.payment import ClientPayment, PaymentStatus, PaymentMethod
from app.models.payout import PartnerPayout, PayoutStatus
from app.models.notification import Notification, NotificationType, RecipientType
from app.models.audit_log import AuditLog

__all__ = [
    "Partner",
    "PartnerStatus",
    "InternalUser",
    "Referral",
    "ReferralStatus",
    "Lead",
    "LeadActivity",
    "LeadStatus",
    "LeadActivityType",
    "ClientPayment",
    "PaymentStatus",
    "PaymentMethod",
    "PartnerPayout",
    "PayoutStatus",
    "Notification",
    "NotificationType",
    "RecipientType",
    "AuditLog",
]
