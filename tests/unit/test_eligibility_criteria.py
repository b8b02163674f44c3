"""Tests for the payout eligibility criteria."""

from decimal import Decimal

import pytest

from app.models.referral import Referral
from app.services import eligibility


def make_referral(**overrides) -> Referral:
    values = dict(
        referral_code="CRYPT-AB12CD",
        status="fully_paid",
        commission_eligible=True,
        payout_requested=False,
        total_commission_earned=Decimal("5000.00"),
        total_commission_claimed=Decimal("0.00"),
    )
    values.update(overrides)
    return Referral(**values)


class TestEligibilityCriteria:

    def test_all_four_hold(self):
        referral = make_referral()
        assert eligibility.is_eligible_for_payout(referral)
        assert eligibility.failed_criteria(referral) == []

    @pytest.mark.parametrize("overrides,failed_name", [
        ({"status": "won"}, "status"),
        ({"commission_eligible": False}, "commission_eligible"),
        ({"payout_requested": True}, "payout_requested"),
        ({"total_commission_earned": Decimal("0.00")}, "unclaimed_commission"),
        ({"total_commission_claimed": Decimal("5000.00")}, "unclaimed_commission"),
    ])
    def test_each_criterion_blocks_on_its_own(self, overrides, failed_name):
        referral = make_referral(**overrides)

        failed = eligibility.failed_criteria(referral)

        assert not eligibility.is_eligible_for_payout(referral)
        assert [c.name for c in failed] == [failed_name]

    def test_failures_reported_in_declaration_order(self):
        referral = make_referral(status="negotiation", commission_eligible=False, payout_requested=True)

        names = [c.name for c in eligibility.failed_criteria(referral)]

        assert names == ["status", "commission_eligible", "payout_requested"]

    def test_sql_clause_covers_every_criterion(self):
        clause = eligibility.eligible_for_payout_clause()
        compiled = str(clause.compile(compile_kwargs={"literal_binds": True}))

        for column in (
            "status",
            "commission_eligible",
            "payout_requested",
            "total_commission_earned",
            "total_commission_claimed",
        ):
            assert f"referrals.{column}" in compiled
        assert "'fully_paid'" in compiled


class TestEligibleReferrals:

    def test_totals(self):
        eligible = eligibility.EligibleReferrals(referrals=[
            make_referral(total_commission_earned=Decimal("5000.00")),
            make_referral(referral_code="CRYPT-ZZ99YY", total_commission_earned=Decimal("1250.50")),
        ])

        assert eligible.total_eligible == 2
        assert eligible.available_for_payout == Decimal("6250.50")

    def test_empty(self):
        eligible = eligibility.EligibleReferrals()
        assert eligible.total_eligible == 0
        assert eligible.available_for_payout == Decimal("0.00")

    def test_counts_only_unclaimed_commission(self):
        eligible = eligibility.EligibleReferrals(referrals=[
            make_referral(total_commission_claimed=Decimal("1000.00")),
            make_referral(referral_code="CRYPT-ZZ99YY", total_commission_earned=Decimal("1250.50")),
        ])

        assert eligible.available_for_payout == Decimal("5250.50")


class TestUnclaimedCommission:

    def test_partial_claim_leaves_remainder(self):
        referral = make_referral(total_commission_claimed=Decimal("1000.00"))

        assert referral.unclaimed_commission == Decimal("4000.00")
        assert eligibility.is_eligible_for_payout(referral)

    def test_fully_claimed_is_not_eligible(self):
        referral = make_referral(total_commission_claimed=Decimal("5000.00"))

        failed = eligibility.failed_criteria(referral)

        assert [c.name for c in failed] == ["unclaimed_commission"]
        assert failed[0].message == "No unclaimed commission on this referral"
