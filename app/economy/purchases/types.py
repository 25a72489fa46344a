from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from app.economy.pricing.types import CouponInstrument


class PurchaseSessionStatus(str, Enum):
    IDLE = "IDLE"
    TIER_SELECTED = "TIER_SELECTED"
    CONFIRMED = "CONFIRMED"


@dataclass(frozen=True, slots=True)
class EventOffer:
    id: int
    title: str
    start_date: str
    time: str
    seats: int
    tiers: tuple[str, ...]
    prices: dict[str, int]
    currency: str = "IDR"

    def unit_price_for(self, tier: str) -> int:
        return self.prices.get(tier, 0)


@dataclass(frozen=True, slots=True)
class UserProfile:
    user_id: str
    points_balance: int = 0
    coupons: tuple[CouponInstrument, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class PurchaseIntent:
    event_id: int
    event_title: str
    event_date: str
    event_time: str
    currency: str
    tier: str
    quantity: int
    unit_price: int
    base_price: int
    coupon_id: int | None
    coupon_code: str | None
    coupon_discount_amount: int
    points_used: int
    points_discount_amount: int
    promotion_code: str | None
    promotion_discount_amount: int
    tax_amount: int
    final_price: int
    user_id: str
    payment_deadline: datetime
    created_at: datetime

    def as_transaction_request(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "userId": self.user_id,
            "eventId": self.event_id,
            "ticketQuantity": self.quantity,
            "basePrice": self.base_price,
            "finalPrice": self.final_price,
            "paymentDeadline": self.payment_deadline.isoformat(),
            "tierType": self.tier,
        }
        if self.coupon_id is not None:
            payload["couponId"] = self.coupon_id
        if self.points_used > 0:
            payload["pointsToUse"] = self.points_used
        if self.promotion_code:
            payload["promotionCode"] = self.promotion_code
        return payload
