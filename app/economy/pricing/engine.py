"""Price calculation for ticket purchases.

Pure functions only: the purchase session and commit-time verification both
call into this module so client and server totals agree.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

from app.economy.pricing.constants import PERCENT_BASE
from app.economy.pricing.types import (
    DiscountInfo,
    DiscountType,
    PriceBreakdown,
    PriceCalculationInputs,
)


def calculate_base_price(unit_price: int, quantity: int) -> int:
    return unit_price * quantity


def calculate_discount_amount(base_amount: int, discount: DiscountInfo) -> int:
    if discount.discount_type == DiscountType.PERCENTAGE:
        amount = int(
            (Decimal(base_amount) * Decimal(discount.discount) / PERCENT_BASE).to_integral_value(
                rounding=ROUND_FLOOR
            )
        )
    else:
        amount = int(discount.discount)
    return min(max(0, amount), base_amount)


def calculate_tax_amount(subtotal: int, tax_rate: Decimal) -> int:
    # Decimal keeps 1000 * 0.10 at exactly 100.
    taxed = Decimal(subtotal) * Decimal(str(tax_rate))
    return int(taxed.to_integral_value(rounding=ROUND_HALF_UP))


def calculate_price_breakdown(inputs: PriceCalculationInputs) -> PriceBreakdown:
    base_price = calculate_base_price(inputs.unit_price, inputs.quantity)

    # Coupon and promotion are both measured against the untouched base price.
    coupon_discount = (
        calculate_discount_amount(base_price, inputs.coupon) if inputs.coupon is not None else 0
    )
    promotion_discount = (
        calculate_discount_amount(base_price, inputs.promotion)
        if inputs.promotion is not None
        else 0
    )
    points_discount = min(max(0, inputs.points_to_use), base_price)

    subtotal_before_tax = max(
        0,
        base_price - coupon_discount - promotion_discount - points_discount,
    )
    tax_amount = calculate_tax_amount(subtotal_before_tax, inputs.tax_rate)

    return PriceBreakdown(
        base_price=base_price,
        coupon_discount=coupon_discount,
        promotion_discount=promotion_discount,
        points_discount=points_discount,
        subtotal_before_tax=subtotal_before_tax,
        tax_amount=tax_amount,
        final_price=subtotal_before_tax + tax_amount,
    )
