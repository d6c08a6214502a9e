"""
Fee Calculator

Splits a sale into platform fee, payment-processor fee, buyer total and
seller net. All arithmetic is Decimal, rounded half-up to cents.

The breakdown is computed once, when the order is created, and persisted on
the Order. It is never recomputed afterwards, so later rate changes do not
touch existing orders.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from marketplace import policy

CENT = Decimal("0.01")


def to_cents(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_money(value) -> Optional[Decimal]:
    """Parse user input into a cent-rounded Decimal; None if it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return to_cents(amount)


@dataclass(frozen=True)
class FeeBreakdown:
    platform_fee: Decimal
    processor_fee: Decimal
    total: Decimal
    seller_net: Decimal

    def as_dict(self):
        return {
            "platform_fee": self.platform_fee,
            "processor_fee": self.processor_fee,
            "total": self.total,
            "seller_net": self.seller_net,
        }


def compute_fees(item_price, shipping_cost) -> FeeBreakdown:
    """
    Compute the fee breakdown for a sale.

    Args:
        item_price: Item subtotal (unit price x quantity)
        shipping_cost: Shipping charged to the buyer

    Returns:
        FeeBreakdown where
            platform_fee  = item_price x platform rate
            processor_fee = (item_price + shipping_cost) x processor rate + fixed fee
            total         = item_price + shipping_cost
            seller_net    = item_price - platform_fee - processor_fee

    Raises:
        ValueError: If either amount is negative

    Example:
        >>> compute_fees(Decimal("10.00"), Decimal("3.00"))
        FeeBreakdown(platform_fee=Decimal('0.60'), processor_fee=Decimal('0.68'),
                     total=Decimal('13.00'), seller_net=Decimal('8.72'))
    """
    item_price = to_cents(Decimal(str(item_price)))
    shipping_cost = to_cents(Decimal(str(shipping_cost)))

    if item_price < 0 or shipping_cost < 0:
        raise ValueError("item_price and shipping_cost must be non-negative")

    total = item_price + shipping_cost
    platform_fee = to_cents(item_price * policy.platform_fee_rate())
    processor_fee = to_cents(total * policy.processor_fee_rate() + policy.processor_fee_fixed())
    seller_net = item_price - platform_fee - processor_fee

    return FeeBreakdown(
        platform_fee=platform_fee,
        processor_fee=processor_fee,
        total=total,
        seller_net=seller_net,
    )
