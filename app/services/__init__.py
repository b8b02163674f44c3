# Services module
from app.services.audit_service import AuditService
from app.services.notification_service import NotificationService
from app.services.bank_service import BankService
from app.services.upload_service import UploadService

# Referral pipeline
from app.services.lead_service import LeadService
from app.services.referral_service import ReferralService
from app.services.payment_service import PaymentService

# Commission & payouts
from app.services.eligibility import EligibilityService
from app.services.payout_service import PayoutService

__all__ = [
    "AuditService",
    "NotificationService",
    "BankService",
    "UploadService",
    # Referral pipeline
    "LeadService",
    "ReferralService",
    "PaymentService",
    # Commission & payouts
    "EligibilityService",
    "PayoutService",
]
