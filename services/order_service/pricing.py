"""
Order totals and discounts.

Discount channels (email, customer, coupon) are additive percentages of the
undiscounted total, never compounded. A caller-supplied percentage only
counts up to the best promotion available on that channel (held by the
customer, or for coupons the one named by its code), and the final amount
never drops below zero.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from shared.errors import InvalidInput

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")

CHANNELS = ("email", "customer", "coupon")


def money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderTotals:
    total_amount: Decimal
    email_discount: Decimal
    customer_discount: Decimal
    coupon_discount: Decimal
    final_amount: Decimal

    @property
    def discount_amount(self) -> Decimal:
        return self.email_discount + self.customer_discount + self.coupon_discount


def items_total(items: Iterable) -> Decimal:
    """Sum of snapshotted price x quantity over objects with .price and .quantity."""
    return money(sum((Decimal(item.price) * item.quantity for item in items), ZERO))


def _percentage(value, channel: str) -> Decimal:
    pct = Decimal(value or 0)
    if pct < ZERO or pct > HUNDRED:
        raise InvalidInput(f"{channel} discount must be between 0 and 100, got {value}")
    return pct


def promotion_cap(promotions: Iterable, total: Decimal) -> Optional[Decimal]:
    """Largest discount amount any of the promotions grants on `total`, or None without promotions."""
    caps = [
        money(p.discount) if p.is_fixed else money(total * Decimal(p.discount) / HUNDRED)
        for p in promotions
    ]
    return max(caps) if caps else None


def compute_totals(
    items: Iterable,
    requested: dict,
    promotions_by_channel: dict,
) -> OrderTotals:
    """
    `requested` maps channel -> percentage asked for by the caller,
    `promotions_by_channel` maps channel -> active promotions of that type.
    """
    total = items_total(items)
    amounts = {}
    for channel in CHANNELS:
        pct = _percentage(requested.get(channel), channel)
        cap = promotion_cap(promotions_by_channel.get(channel, ()), total)
        if not pct or cap is None:
            amounts[channel] = ZERO
            continue
        amounts[channel] = min(money(total * pct / HUNDRED), cap)

    discount = amounts["email"] + amounts["customer"] + amounts["coupon"]
    final = max(total - discount, ZERO)
    return OrderTotals(
        total_amount=total,
        email_discount=money(amounts["email"]),
        customer_discount=money(amounts["customer"]),
        coupon_discount=money(amounts["coupon"]),
        final_amount=money(final),
    )
