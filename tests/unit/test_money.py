"""Tests for billing rounding helpers."""

from decimal import Decimal

from fleetledger.services.money import prorate, round_cents, round_whole


class TestRounding:
    def test_round_whole_half_up(self) -> None:
        assert round_whole(Decimal("1070.5")) == Decimal("1071")
        assert round_whole(Decimal("1070.49")) == Decimal("1070")

    def test_round_whole_negative_half_towards_positive(self) -> None:
        assert round_whole(Decimal("-1070.5")) == Decimal("-1070")
        assert round_whole(Decimal("-1070.6")) == Decimal("-1071")
        assert round_whole(Decimal("-120.40")) == Decimal("-120")

    def test_round_cents_half_up(self) -> None:
        assert round_cents(Decimal("221.425")) == Decimal("221.43")
        assert round_cents(Decimal("0.005")) == Decimal("0.01")


class TestProrate:
    def test_full_month_returns_rate_exactly(self) -> None:
        assert prorate(Decimal("3100"), 31, 31) == Decimal("3100")

    def test_partial_month(self) -> None:
        amount = prorate(Decimal("3000"), 10, 28)

        assert round_cents(amount) == Decimal("1071.43")
        assert round_whole(amount) == Decimal("1071")

    def test_zero_days(self) -> None:
        assert prorate(Decimal("3000"), 0, 30) == Decimal("0")
