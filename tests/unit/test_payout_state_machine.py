"""Tests for the payout lifecycle state machine."""

import pytest

from app.core.exceptions import InvalidArgumentError, InvalidStateError
from app.models.payout import PayoutStatus
from app.services import payout_state_machine as psm


class TestPayoutTransitions:

    @pytest.mark.parametrize("target", ["processing", "paid", "failed", "cancelled"])
    def test_pending_exits(self, target):
        assert psm.can_transition("pending", target)

    @pytest.mark.parametrize("target", ["paid", "failed"])
    def test_processing_exits(self, target):
        assert psm.can_transition("processing", target)

    @pytest.mark.parametrize("target", ["pending", "cancelled", "processing"])
    def test_processing_cannot_go_back_or_be_cancelled(self, target):
        assert not psm.can_transition("processing", target)

    @pytest.mark.parametrize("status", ["paid", "failed", "cancelled"])
    def test_terminal(self, status):
        assert psm.is_terminal(status)
        assert not psm.is_active(status)

    @pytest.mark.parametrize("status", ["pending", "processing"])
    def test_active(self, status):
        assert psm.is_active(status)
        assert not psm.is_terminal(status)

    def test_active_statuses_match_model(self):
        assert set(PayoutStatus.active()) == {"pending", "processing"}


class TestValidation:

    @pytest.mark.parametrize("target", ["pending", "cancelled", "refunded", ""])
    def test_staff_target_restricted(self, target):
        with pytest.raises(InvalidArgumentError):
            psm.validate_staff_target(target)

    @pytest.mark.parametrize("target", ["processing", "paid", "failed"])
    def test_staff_target_accepted(self, target):
        psm.validate_staff_target(target)

    def test_paid_is_terminal(self):
        with pytest.raises(InvalidStateError) as exc:
            psm.validate_transition("paid", "failed")
        assert "terminal" in exc.value.message

    def test_disallowed_transition_lists_allowed(self):
        with pytest.raises(InvalidStateError) as exc:
            psm.validate_transition("processing", "processing")
        assert "paid, failed" in exc.value.message
