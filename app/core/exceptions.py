"""
Service-layer errors.

Every precondition failure in the referral/commission/payout services is
raised as one of these. `app.main` maps them onto the JSON failure envelope,
so endpoints never need to catch them.
"""
from typing import List, Optional


class ServiceError(Exception):
    """Base exception for referral/commission/payout errors."""
    kind: str = "error"
    status_code: int = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(self.message)


class NotFoundError(ServiceError):
    """Entity absent, or not owned by the caller."""
    kind = "not_found"
    status_code = 404


class InvalidArgumentError(ServiceError):
    """Malformed or out-of-range input. Carries field-level errors."""
    kind = "invalid_argument"
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None, field: Optional[str] = None):
        if field and not errors:
            errors = [f"{field}: {message}"]
        super().__init__(message, errors)


class InvalidStateError(ServiceError):
    """Operation not permitted given the entity's current state."""
    kind = "invalid_state"
    status_code = 409


class ConflictError(ServiceError):
    """Operation collides with an existing record or a concurrent write."""
    kind = "conflict"
    status_code = 409


class UpstreamError(ServiceError):
    """Blob store / bank lookup failure on the critical path."""
    kind = "upstream"
    status_code = 502
