from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from app.economy.pricing.types import CouponInstrument, DiscountType, PromotionInstrument
from app.economy.purchases.types import UserProfile

logger = structlog.get_logger("app.services.ticketing_api")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class PointsDataPayload(_ApiModel):
    current_balance: int = Field(default=0, ge=0)


class CouponPayload(_ApiModel):
    id: int
    code: str
    discount: int = Field(ge=0)
    discount_type: DiscountType
    expires_at: datetime
    is_referral: bool = False
    is_used: bool = False
    user_id: int | str | None = None

    def to_domain(self) -> CouponInstrument:
        return CouponInstrument(
            id=self.id,
            code=self.code,
            discount=self.discount,
            discount_type=self.discount_type,
            expires_at=_as_utc(self.expires_at),
            is_used=self.is_used,
            user_id=str(self.user_id) if self.user_id is not None else None,
            is_referral=self.is_referral,
        )


class UserProfilePayload(_ApiModel):
    id: int | str
    points_data: PointsDataPayload | None = None
    # Validated per entry; invalid coupons are dropped.
    coupons_data: list[Any] = Field(default_factory=list)

    def coupons(self) -> tuple[CouponInstrument, ...]:
        coupons: list[CouponInstrument] = []
        for raw_coupon in self.coupons_data:
            try:
                coupons.append(CouponPayload.model_validate(raw_coupon).to_domain())
            except ValidationError:
                logger.warning("ticketing_api_coupon_payload_skipped", user_id=str(self.id))
        return tuple(coupons)

    def to_domain(self) -> UserProfile:
        return UserProfile(
            user_id=str(self.id),
            points_balance=self.points_data.current_balance if self.points_data else 0,
            coupons=self.coupons(),
        )


class PromotionPayload(_ApiModel):
    id: int | str
    code: str
    discount: int = Field(ge=0)
    discount_type: DiscountType
    start_date: datetime
    end_date: datetime
    event_id: int | None = None
    is_active: bool = True
    usage_limit: int | None = None
    usage_count: int = Field(default=0, ge=0)

    def to_domain(self) -> PromotionInstrument:
        return PromotionInstrument(
            id=str(self.id),
            code=self.code,
            discount=self.discount,
            discount_type=self.discount_type,
            start_date=_as_utc(self.start_date),
            end_date=_as_utc(self.end_date),
            event_id=self.event_id,
            is_active=self.is_active,
            usage_limit=self.usage_limit,
            usage_count=self.usage_count,
        )


class TransactionRefPayload(_ApiModel):
    id: int | str


class TransactionCreatedPayload(_ApiModel):
    id: int | str | None = None
    transaction: TransactionRefPayload | None = None

    def transaction_id(self) -> str | None:
        if self.id is not None:
            return str(self.id)
        if self.transaction is not None:
            return str(self.transaction.id)
        return None
