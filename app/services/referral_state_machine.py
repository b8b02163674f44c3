"""
Referral Pipeline State Machine

This module is the SINGLE SOURCE OF TRUTH for referral status transitions.
All status changes must go through this module.

Pipeline (skipping forward is allowed):
    code_sent -> contacted -> meeting_scheduled -> proposal_sent
        -> negotiation -> won -> fully_paid
    any non-terminal -> lost

fully_paid and lost are terminal. fully_paid is only reachable through the
finalize operation, which is also the only writer of commission_eligible.
"""

from typing import Optional, List, Dict

from app.core.exceptions import InvalidArgumentError, InvalidStateError
from app.models.lead import LeadStatus
from app.models.referral import ReferralStatus


# =============================================================================
# TRANSITION RULES
# =============================================================================

PIPELINE_ORDER: List[str] = [
    ReferralStatus.CODE_SENT.value,
    ReferralStatus.CONTACTED.value,
    ReferralStatus.MEETING_SCHEDULED.value,
    ReferralStatus.PROPOSAL_SENT.value,
    ReferralStatus.NEGOTIATION.value,
    ReferralStatus.WON.value,
]

TERMINAL_STATUSES = {
    ReferralStatus.FULLY_PAID.value,
    ReferralStatus.LOST.value,
}


def _build_transitions() -> Dict[str, List[str]]:
    transitions: Dict[str, List[str]] = {}
    for current in PIPELINE_ORDER:
        # Any other pipeline stage, plus the two terminal states
        transitions[current] = [s for s in PIPELINE_ORDER if s != current] + [
            ReferralStatus.FULLY_PAID.value,
            ReferralStatus.LOST.value,
        ]
    for terminal in TERMINAL_STATUSES:
        transitions[terminal] = []
    return transitions


# Format: current_status -> [list of allowed next statuses]
REFERRAL_TRANSITIONS: Dict[str, List[str]] = _build_transitions()

TRANSITION_ACTIONS: Dict[str, str] = {
    ReferralStatus.CONTACTED.value: "Mark Contacted",
    ReferralStatus.MEETING_SCHEDULED.value: "Schedule Meeting",
    ReferralStatus.PROPOSAL_SENT.value: "Send Proposal",
    ReferralStatus.NEGOTIATION.value: "Start Negotiation",
    ReferralStatus.WON.value: "Mark Won",
    ReferralStatus.FULLY_PAID.value: "Finalize Deal",
    ReferralStatus.LOST.value: "Mark Lost",
}

# Lead status to apply when a referral reaches these statuses
LEAD_STATUS_SYNC: Dict[str, str] = {
    ReferralStatus.WON.value: LeadStatus.CONVERTED.value,
    ReferralStatus.FULLY_PAID.value: LeadStatus.CONVERTED.value,
    ReferralStatus.LOST.value: LeadStatus.LOST.value,
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def is_valid_status(status: str) -> bool:
    return status in REFERRAL_TRANSITIONS


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current_status: str, new_status: str) -> bool:
    """Check if a transition is allowed."""
    return new_status in REFERRAL_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(current_status: str) -> List[str]:
    """Get list of statuses that can be transitioned to from current status."""
    return REFERRAL_TRANSITIONS.get(current_status, [])


def get_transition_action(current_status: str, new_status: str) -> str:
    """Get human-readable action name for a transition."""
    return TRANSITION_ACTIONS.get(new_status, f"{current_status} -> {new_status}")


def lead_status_for(referral_status: str) -> Optional[str]:
    """Lead status a referral transition forces onto its linked lead, if any."""
    return LEAD_STATUS_SYNC.get(referral_status)


def validate_status_value(status: str) -> None:
    """Reject anything outside the referral status enum."""
    if not is_valid_status(status):
        raise InvalidArgumentError(
            f"Invalid status '{status}'. Allowed: {', '.join(ReferralStatus.values())}",
            field="status",
        )


def validate_transition(current_status: str, new_status: str) -> None:
    """
    Validate a status transition. Raises InvalidStateError if not allowed.

    Re-applying the current status of a non-terminal referral is allowed.
    """
    validate_status_value(new_status)

    if is_terminal(current_status):
        raise InvalidStateError(
            f"Referral in '{current_status}' status cannot be modified. This is a terminal state."
        )

    if current_status == new_status:
        return

    if not can_transition(current_status, new_status):
        allowed = get_allowed_transitions(current_status)
        raise InvalidStateError(
            f"Cannot change referral from '{current_status}' to '{new_status}'. "
            f"Allowed transitions: {', '.join(allowed)}"
        )
