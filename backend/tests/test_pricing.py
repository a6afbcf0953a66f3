"""
A+ Marketplace Backend — Pricing Rules Unit Tests
===================================================

What:  Tests for commission and profit arithmetic.
How:   Pure functions, no fixtures.

What we test:
    ✅ Commission formula with the default rates
    ✅ commission + payout == price for every price, including tiny ones
    ✅ Half-up rounding to cents
    ✅ Negative inputs rejected
    ✅ Profit projection
"""

from decimal import Decimal

import pytest

from aplus.services.pricing import calculate_profit, compute_commission, to_money

RATES = (Decimal("0.10"), Decimal("2"), Decimal("0.03"))


class TestCommission:

    def test_default_rates_on_100(self):
        split = compute_commission(Decimal("100"), *RATES)
        assert split.commission == Decimal("15.00")
        assert split.seller_payout == Decimal("85.00")

    @pytest.mark.parametrize("price", ["0", "0.50", "1.99", "2.00", "10", "37.37", "99.99", "1234.56"])
    def test_commission_plus_payout_equals_price(self, price):
        split = compute_commission(Decimal(price), *RATES)
        assert split.commission + split.seller_payout == to_money(price)
        assert split.seller_payout >= 0

    def test_price_below_fixed_fee_pays_seller_nothing(self):
        split = compute_commission(Decimal("1.50"), *RATES)
        assert split.commission == Decimal("1.50")
        assert split.seller_payout == Decimal("0.00")

    def test_free_note(self):
        split = compute_commission(Decimal("0"), *RATES)
        assert split == (Decimal("0.00"), Decimal("0.00"))

    def test_rounds_half_up_to_cents(self):
        # 0.13 * 10.05 + 2 = 3.3065 → 3.31
        split = compute_commission(Decimal("10.05"), *RATES)
        assert split.commission == Decimal("3.31")
        assert split.seller_payout == Decimal("6.74")

    def test_accepts_ints_and_strings(self):
        assert compute_commission(100, "0.10", 2, "0.03").commission == Decimal("15.00")

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            compute_commission(Decimal("-1"), *RATES)

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            compute_commission(Decimal("10"), Decimal("-0.1"), Decimal("2"), Decimal("0.03"))


class TestProfit:

    def test_profit_and_total(self):
        breakdown = calculate_profit(Decimal("250"), Decimal("0.10"))
        assert breakdown.balance == Decimal("250.00")
        assert breakdown.profit == Decimal("25.00")
        assert breakdown.total == Decimal("275.00")

    def test_profit_rounding(self):
        breakdown = calculate_profit(Decimal("0.05"), Decimal("0.10"))
        assert breakdown.profit == Decimal("0.01")
        assert breakdown.total == Decimal("0.06")
