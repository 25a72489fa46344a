from __future__ import annotations

import re
from datetime import datetime

from app.economy.pricing.constants import LOW_STOCK_THRESHOLD, MAX_TICKETS_PER_ORDER
from app.economy.pricing.types import CouponInstrument, PromotionInstrument

_NON_DIGIT_PATTERN = re.compile(r"[^0-9]")


def digits_only(raw_input: str) -> str:
    return _NON_DIGIT_PATTERN.sub("", raw_input)


def validate_points_input(raw_input: str, available_balance: int) -> int:
    digits = digits_only(raw_input or "")
    if not digits:
        return 0
    return min(int(digits), max(0, available_balance))


def is_coupon_eligible(
    coupon: CouponInstrument,
    *,
    user_id: str | None,
    now_utc: datetime,
) -> bool:
    if coupon.is_used:
        return False
    if coupon.expires_at <= now_utc:
        return False
    if coupon.user_id is not None and coupon.user_id != user_id:
        return False
    return True


def is_promotion_window_open(promotion: PromotionInstrument, *, now_utc: datetime) -> bool:
    return promotion.start_date <= now_utc <= promotion.end_date


def is_promotion_under_usage_limit(promotion: PromotionInstrument) -> bool:
    if promotion.usage_limit is None:
        return True
    return promotion.usage_count < promotion.usage_limit


def is_promotion_eligible(
    promotion: PromotionInstrument,
    *,
    event_id: int,
    now_utc: datetime,
) -> bool:
    if not promotion.is_active:
        return False
    if promotion.event_id is not None and promotion.event_id != event_id:
        return False
    if not is_promotion_window_open(promotion, now_utc=now_utc):
        return False
    return is_promotion_under_usage_limit(promotion)


def max_purchasable_quantity(
    remaining_seats: int,
    *,
    max_per_order: int = MAX_TICKETS_PER_ORDER,
) -> int:
    return max(0, min(max_per_order, remaining_seats))


def clamp_quantity(
    requested: int,
    *,
    remaining_seats: int,
    max_per_order: int = MAX_TICKETS_PER_ORDER,
) -> int:
    upper = max_purchasable_quantity(remaining_seats, max_per_order=max_per_order)
    # Sold out still reports 1; seat sufficiency is enforced at commit.
    return max(1, min(requested, upper))


def is_low_stock(remaining_seats: int, *, threshold: int = LOW_STOCK_THRESHOLD) -> bool:
    return 0 < remaining_seats < threshold
