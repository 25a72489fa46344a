from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException

from app.core.config import get_settings
from app.economy.pricing.engine import calculate_price_breakdown
from app.economy.pricing.types import PriceCalculationInputs
from app.services.currency import format_currency

from .pricing_models import PriceQuoteRequest, PriceQuoteResponse

router = APIRouter(tags=["pricing"])
logger = structlog.get_logger(__name__)


@router.post("/api/pricing/quote", response_model=PriceQuoteResponse)
async def quote_price(payload: PriceQuoteRequest) -> PriceQuoteResponse:
    settings = get_settings()
    if payload.quantity > settings.purchase_max_tickets_per_order:
        raise HTTPException(status_code=422, detail={"code": "E_QUANTITY_LIMIT"})

    tax_rate = payload.tax_rate if payload.tax_rate is not None else settings.purchase_tax_rate
    currency = (payload.currency or settings.default_currency).upper()
    breakdown = calculate_price_breakdown(
        PriceCalculationInputs(
            unit_price=payload.unit_price,
            quantity=payload.quantity,
            coupon=payload.coupon.to_domain() if payload.coupon else None,
            promotion=payload.promotion.to_domain() if payload.promotion else None,
            points_to_use=payload.points_to_use,
            tax_rate=tax_rate,
        )
    )
    logger.info(
        "pricing_quote_computed",
        base_price=breakdown.base_price,
        final_price=breakdown.final_price,
        has_coupon=payload.coupon is not None,
        has_promotion=payload.promotion is not None,
    )
    return PriceQuoteResponse(
        base_price=breakdown.base_price,
        coupon_discount=breakdown.coupon_discount,
        promotion_discount=breakdown.promotion_discount,
        points_discount=breakdown.points_discount,
        subtotal_before_tax=breakdown.subtotal_before_tax,
        tax_amount=breakdown.tax_amount,
        final_price=breakdown.final_price,
        tax_rate=tax_rate,
        currency=currency,
        formatted_final_price=format_currency(breakdown.final_price, currency),
    )
