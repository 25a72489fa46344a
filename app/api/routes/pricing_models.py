from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from app.economy.pricing.types import DiscountInfo, DiscountType


class DiscountRequest(BaseModel):
    discount: int = Field(ge=0)
    discount_type: DiscountType

    def to_domain(self) -> DiscountInfo:
        return DiscountInfo(discount=self.discount, discount_type=self.discount_type)


class PriceQuoteRequest(BaseModel):
    unit_price: int = Field(ge=0)
    quantity: int = Field(ge=1)
    coupon: DiscountRequest | None = None
    promotion: DiscountRequest | None = None
    points_to_use: int = Field(default=0, ge=0)
    tax_rate: Decimal | None = Field(default=None, ge=0, le=1)
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class PriceQuoteResponse(BaseModel):
    base_price: int = Field(ge=0)
    coupon_discount: int = Field(ge=0)
    promotion_discount: int = Field(ge=0)
    points_discount: int = Field(ge=0)
    subtotal_before_tax: int = Field(ge=0)
    tax_amount: int = Field(ge=0)
    final_price: int = Field(ge=0)
    tax_rate: Decimal
    currency: str
    formatted_final_price: str
