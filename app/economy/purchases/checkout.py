"""Commit-time re-validation of a staged purchase intent.

The transaction-creation side calls ``verify_purchase_intent`` with the
authoritative event, coupon, promotion and points data it loaded (inside its
own database transaction). Client totals are never trusted: the breakdown is
recomputed with the same engine the purchase session uses.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import structlog

from app.economy.pricing.constants import DEFAULT_TAX_RATE, MAX_TICKETS_PER_ORDER
from app.economy.pricing.engine import calculate_price_breakdown
from app.economy.pricing.rules import is_coupon_eligible, is_promotion_eligible
from app.economy.pricing.types import (
    CouponInstrument,
    PriceBreakdown,
    PriceCalculationInputs,
    PromotionInstrument,
)
from app.economy.purchases.errors import (
    CouponUnavailableError,
    InsufficientPointsError,
    InsufficientSeatsError,
    PriceMismatchError,
    PromotionUnavailableError,
    QuantityLimitExceededError,
    TierNotFoundError,
)
from app.economy.purchases.types import EventOffer, PurchaseIntent

logger = structlog.get_logger(__name__)


def _validate_coupon(
    intent: PurchaseIntent,
    coupon: CouponInstrument | None,
    *,
    now_utc: datetime,
) -> CouponInstrument | None:
    if intent.coupon_id is None:
        return None
    if coupon is None or coupon.id != intent.coupon_id:
        raise CouponUnavailableError
    if not is_coupon_eligible(coupon, user_id=intent.user_id, now_utc=now_utc):
        raise CouponUnavailableError
    return coupon


def _validate_promotion(
    intent: PurchaseIntent,
    promotion: PromotionInstrument | None,
    *,
    now_utc: datetime,
) -> PromotionInstrument | None:
    if not intent.promotion_code:
        return None
    if promotion is None or promotion.code != intent.promotion_code:
        raise PromotionUnavailableError
    if not is_promotion_eligible(promotion, event_id=intent.event_id, now_utc=now_utc):
        raise PromotionUnavailableError
    return promotion


def _assert_totals_match(intent: PurchaseIntent, breakdown: PriceBreakdown) -> None:
    expected = (
        breakdown.base_price,
        breakdown.coupon_discount,
        breakdown.promotion_discount,
        breakdown.points_discount,
        breakdown.tax_amount,
        breakdown.final_price,
    )
    received = (
        intent.base_price,
        intent.coupon_discount_amount,
        intent.promotion_discount_amount,
        intent.points_discount_amount,
        intent.tax_amount,
        intent.final_price,
    )
    if expected != received:
        logger.warning(
            "purchase_verify_price_mismatch",
            event_id=intent.event_id,
            user_id=intent.user_id,
            expected_final_price=breakdown.final_price,
            received_final_price=intent.final_price,
        )
        raise PriceMismatchError


def verify_purchase_intent(
    intent: PurchaseIntent,
    *,
    offer: EventOffer,
    coupon: CouponInstrument | None,
    promotion: PromotionInstrument | None,
    points_balance: int,
    now_utc: datetime,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    max_per_order: int = MAX_TICKETS_PER_ORDER,
) -> PriceBreakdown:
    if intent.tier not in offer.tiers:
        raise TierNotFoundError
    if intent.quantity < 1 or intent.quantity > max_per_order:
        raise QuantityLimitExceededError
    if intent.quantity > offer.seats:
        raise InsufficientSeatsError

    verified_coupon = _validate_coupon(intent, coupon, now_utc=now_utc)
    verified_promotion = _validate_promotion(intent, promotion, now_utc=now_utc)

    if intent.points_used < 0 or intent.points_used > points_balance:
        raise InsufficientPointsError

    breakdown = calculate_price_breakdown(
        PriceCalculationInputs(
            unit_price=offer.unit_price_for(intent.tier),
            quantity=intent.quantity,
            coupon=verified_coupon.as_discount() if verified_coupon is not None else None,
            promotion=(
                verified_promotion.as_discount() if verified_promotion is not None else None
            ),
            points_to_use=intent.points_used,
            tax_rate=tax_rate,
        )
    )
    _assert_totals_match(intent, breakdown)
    return breakdown
