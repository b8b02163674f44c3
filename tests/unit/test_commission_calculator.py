"""Tests for commission calculation."""

from decimal import Decimal

import pytest

from app.core.exceptions import InvalidArgumentError
from app.services.commission_calculator import calculate_commission, normalize_amount


class TestCalculateCommission:
    """Test commission = round(amount * rate, 2)."""

    def test_default_rate_is_five_percent(self):
        assert calculate_commission(Decimal("100000")) == Decimal("5000.00")

    def test_result_has_two_decimal_places(self):
        result = calculate_commission(Decimal("1234.56"))
        assert result == Decimal("61.73")
        assert result.as_tuple().exponent == -2

    def test_rounds_half_up(self):
        # 10.10 * 0.05 = 0.505
        assert calculate_commission(Decimal("10.10")) == Decimal("0.51")
        # 0.10 * 0.05 = 0.005
        assert calculate_commission(Decimal("0.10")) == Decimal("0.01")

    def test_explicit_rate(self):
        assert calculate_commission(Decimal("200000"), Decimal("0.075")) == Decimal("15000.00")

    def test_accepts_string_and_int_amounts(self):
        assert calculate_commission("50000") == Decimal("2500.00")
        assert calculate_commission(50000) == Decimal("2500.00")

    def test_float_input_does_not_leak_binary_error(self):
        # Decimal(0.1) would be 0.1000000000000000055...
        assert calculate_commission(0.1 + 0.2, Decimal("1")) == Decimal("0.30")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1"), Decimal("-100000")])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(InvalidArgumentError) as exc:
            calculate_commission(amount)
        assert exc.value.kind == "invalid_argument"
        assert exc.value.errors == ["amount: Amount must be greater than 0"]

    def test_amount_below_a_kobo_rounds_to_zero_and_is_rejected(self):
        with pytest.raises(InvalidArgumentError):
            calculate_commission(Decimal("0.004"))

    def test_rounding_is_per_payment(self):
        payments = [Decimal("33333.33"), Decimal("33333.33"), Decimal("33333.34")]
        total = sum((calculate_commission(p) for p in payments), Decimal("0"))

        assert total == Decimal("5000.01")
        assert calculate_commission(sum(payments)) == Decimal("5000.00")


class TestNormalizeAmount:

    def test_quantizes_to_cents(self):
        assert normalize_amount("12.345") == Decimal("12.35")

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity", None])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(InvalidArgumentError) as exc:
            normalize_amount(value, field="amount_paid")
        assert exc.value.errors == ["amount_paid: Amount must be a number"]
