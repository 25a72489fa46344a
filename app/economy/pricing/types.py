from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from app.economy.pricing.constants import DEFAULT_TAX_RATE


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


@dataclass(frozen=True, slots=True)
class DiscountInfo:
    discount: int
    discount_type: DiscountType


@dataclass(frozen=True, slots=True)
class PriceCalculationInputs:
    unit_price: int
    quantity: int
    coupon: DiscountInfo | None = None
    promotion: DiscountInfo | None = None
    points_to_use: int = 0
    tax_rate: Decimal = DEFAULT_TAX_RATE


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    base_price: int
    coupon_discount: int
    promotion_discount: int
    points_discount: int
    subtotal_before_tax: int
    tax_amount: int
    final_price: int

    @property
    def total_discount(self) -> int:
        return self.coupon_discount + self.promotion_discount + self.points_discount


EMPTY_PRICE_BREAKDOWN = PriceBreakdown(
    base_price=0,
    coupon_discount=0,
    promotion_discount=0,
    points_discount=0,
    subtotal_before_tax=0,
    tax_amount=0,
    final_price=0,
)


@dataclass(frozen=True, slots=True)
class CouponInstrument:
    id: int
    code: str
    discount: int
    discount_type: DiscountType
    expires_at: datetime
    is_used: bool = False
    user_id: str | None = None
    is_referral: bool = False

    def as_discount(self) -> DiscountInfo:
        return DiscountInfo(discount=self.discount, discount_type=self.discount_type)


@dataclass(frozen=True, slots=True)
class PromotionInstrument:
    id: str
    code: str
    discount: int
    discount_type: DiscountType
    start_date: datetime
    end_date: datetime
    event_id: int | None = None
    is_active: bool = True
    usage_limit: int | None = None
    usage_count: int = 0

    def as_discount(self) -> DiscountInfo:
        return DiscountInfo(discount=self.discount, discount_type=self.discount_type)
