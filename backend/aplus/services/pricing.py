"""
A+ Marketplace Backend — Pricing Rules
========================================

What:  Pure money arithmetic for the marketplace: the platform commission
       taken from each note sale, and the profit projection shown in the
       admin profit report.
How:   Decimal arithmetic quantized to cents with ROUND_HALF_UP. No I/O, no
       settings lookups inside the functions; callers pass the rates.
Who:   PurchaseService (commission), ProfitService (profit).

    commission = platform_percent * price + fixed_fee + payment_percent * price
    payout     = price - commission

Example: price 100, rates 0.10 / 2 / 0.03 → commission 15.00, payout 85.00.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple, Union

Number = Union[Decimal, int, str]

CENT = Decimal("0.01")


def to_money(value: Number) -> Decimal:
    """Convert to a Decimal rounded half-up to two decimal places."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class Commission(NamedTuple):
    commission: Decimal
    seller_payout: Decimal


class ProfitBreakdown(NamedTuple):
    balance: Decimal
    profit: Decimal
    total: Decimal


def compute_commission(
    price: Number,
    platform_percent: Number,
    fixed_fee: Number,
    payment_percent: Number,
) -> Commission:
    """
    Split a sale price into platform commission and seller payout.

    The commission is capped at the price, so for notes cheaper than the
    fixed fee the seller receives 0 and `commission + payout == price`
    still holds.

    Raises:
        ValueError: negative price or rates.
    """
    price_d = to_money(price)
    platform_d = Decimal(str(platform_percent))
    fixed_d = Decimal(str(fixed_fee))
    payment_d = Decimal(str(payment_percent))
    if price_d < 0 or platform_d < 0 or fixed_d < 0 or payment_d < 0:
        raise ValueError("price and commission rates must be non-negative")

    commission = to_money(platform_d * price_d + fixed_d + payment_d * price_d)
    if commission > price_d:
        commission = price_d
    return Commission(commission=commission, seller_payout=price_d - commission)


def calculate_profit(balance: Number, percent: Number) -> ProfitBreakdown:
    """profit = balance * percent; total = balance + profit (each to cents)."""
    balance_d = to_money(balance)
    profit = to_money(balance_d * Decimal(str(percent)))
    return ProfitBreakdown(balance=balance_d, profit=profit, total=to_money(balance_d + profit))
