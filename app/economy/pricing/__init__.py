from app.economy.pricing.engine import (
    calculate_base_price,
    calculate_discount_amount,
    calculate_price_breakdown,
    calculate_tax_amount,
)
from app.economy.pricing.rules import (
    clamp_quantity,
    is_coupon_eligible,
    is_low_stock,
    is_promotion_eligible,
    is_promotion_window_open,
    validate_points_input,
)
from app.economy.pricing.types import (
    EMPTY_PRICE_BREAKDOWN,
    CouponInstrument,
    DiscountInfo,
    DiscountType,
    PriceBreakdown,
    PriceCalculationInputs,
    PromotionInstrument,
)

__all__ = [
    "EMPTY_PRICE_BREAKDOWN",
    "CouponInstrument",
    "DiscountInfo",
    "DiscountType",
    "PriceBreakdown",
    "PriceCalculationInputs",
    "PromotionInstrument",
    "calculate_base_price",
    "calculate_discount_amount",
    "calculate_price_breakdown",
    "calculate_tax_amount",
    "clamp_quantity",
    "is_coupon_eligible",
    "is_low_stock",
    "is_promotion_eligible",
    "is_promotion_window_open",
    "validate_points_input",
]
