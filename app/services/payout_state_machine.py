"""
Payout State Machine

SINGLE SOURCE OF TRUTH for payout status transitions.

    pending    -> processing | paid | failed | cancelled
    processing -> paid | failed

paid, failed and cancelled are terminal. Cancellation is partner-initiated;
the other transitions belong to internal staff.
"""

from typing import List, Dict

from app.core.exceptions import InvalidArgumentError, InvalidStateError
from app.models.payout import PayoutStatus


PAYOUT_TRANSITIONS: Dict[str, List[str]] = {
    PayoutStatus.PENDING.value: [
        PayoutStatus.PROCESSING.value,   # Transfer started
        PayoutStatus.PAID.value,         # Settled directly
        PayoutStatus.FAILED.value,       # Transfer failed
        PayoutStatus.CANCELLED.value,    # Withdrawn by partner
    ],
    PayoutStatus.PROCESSING.value: [
        PayoutStatus.PAID.value,
        PayoutStatus.FAILED.value,
    ],
    PayoutStatus.PAID.value: [],         # Terminal state - no transitions
    PayoutStatus.FAILED.value: [],       # Terminal state - no transitions
    PayoutStatus.CANCELLED.value: [],    # Terminal state - no transitions
}

# Targets internal staff may request via the process operation
STAFF_TARGET_STATUSES: List[str] = [
    PayoutStatus.PROCESSING.value,
    PayoutStatus.PAID.value,
    PayoutStatus.FAILED.value,
]

TRANSITION_ACTIONS: Dict[tuple, str] = {
    (PayoutStatus.PENDING.value, PayoutStatus.PROCESSING.value): "Start Processing",
    (PayoutStatus.PENDING.value, PayoutStatus.PAID.value): "Mark Paid",
    (PayoutStatus.PENDING.value, PayoutStatus.FAILED.value): "Mark Failed",
    (PayoutStatus.PENDING.value, PayoutStatus.CANCELLED.value): "Cancel",
    (PayoutStatus.PROCESSING.value, PayoutStatus.PAID.value): "Mark Paid",
    (PayoutStatus.PROCESSING.value, PayoutStatus.FAILED.value): "Mark Failed",
}


def is_terminal(status: str) -> bool:
    return not PAYOUT_TRANSITIONS.get(status)


def is_active(status: str) -> bool:
    return status in PayoutStatus.active()


def can_transition(current_status: str, new_status: str) -> bool:
    """Check if a transition is allowed."""
    return new_status in PAYOUT_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(current_status: str) -> List[str]:
    return PAYOUT_TRANSITIONS.get(current_status, [])


def get_transition_action(current_status: str, new_status: str) -> str:
    """Get human-readable action name for a transition."""
    return TRANSITION_ACTIONS.get((current_status, new_status), f"{current_status} -> {new_status}")


def validate_staff_target(new_status: str) -> None:
    """Staff may only move a payout to processing, paid or failed."""
    if new_status not in STAFF_TARGET_STATUSES:
        raise InvalidArgumentError(
            f"Invalid status '{new_status}'. Allowed: {', '.join(STAFF_TARGET_STATUSES)}",
            field="status",
        )


def validate_transition(current_status: str, new_status: str) -> None:
    """Validate a payout status transition. Raises InvalidStateError if invalid."""
    if can_transition(current_status, new_status):
        return

    allowed = get_allowed_transitions(current_status)
    if not allowed:
        raise InvalidStateError(
            f"Payout in '{current_status}' status cannot be modified. This is a terminal state."
        )
    raise InvalidStateError(
        f"Cannot change payout from '{current_status}' to '{new_status}'. "
        f"Allowed transitions: {', '.join(allowed)}"
    )
