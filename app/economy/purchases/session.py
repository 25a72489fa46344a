"""Per-checkout purchase state.

One ``PurchaseSession`` is built for each event page visit. It owns the
user's in-progress selection, keeps ``breakdown`` in sync after every edit and
snapshots everything into a ``PurchaseIntent`` on confirmation.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Protocol

import structlog

from app.core.config import Settings, get_settings
from app.economy.pricing.constants import (
    DEFAULT_TAX_RATE,
    LOW_STOCK_THRESHOLD,
    MAX_TICKETS_PER_ORDER,
)
from app.economy.pricing.engine import calculate_price_breakdown
from app.economy.pricing.rules import (
    clamp_quantity,
    digits_only,
    is_coupon_eligible,
    is_low_stock,
    is_promotion_eligible,
    max_purchasable_quantity,
    validate_points_input,
)
from app.economy.pricing.types import (
    EMPTY_PRICE_BREAKDOWN,
    CouponInstrument,
    PriceBreakdown,
    PriceCalculationInputs,
    PromotionInstrument,
)
from app.economy.purchases.constants import (
    COUPON_CLEAR_VALUES,
    DEFAULT_POINTS_INPUT,
    PAYMENT_WINDOW,
    PROMO_ERROR_DEFAULT,
    PROMO_ERROR_NOT_ACTIVE,
    USER_DATA_ERROR_DEFAULT,
)
from app.economy.purchases.errors import (
    InvalidQuantityError,
    NotAuthenticatedError,
    PurchaseConfirmationError,
    PurchaseSessionConfirmedError,
    TierNotFoundError,
    TierNotSelectedError,
    ZeroPriceError,
)
from app.economy.purchases.staging import FileIntentStaging, IntentStaging
from app.economy.purchases.types import (
    EventOffer,
    PurchaseIntent,
    PurchaseSessionStatus,
    UserProfile,
)
from app.services.promo_codes import is_well_formed_promo_code, normalize_promo_code
from app.services.ticketing_api_errors import (
    PROMO_NOT_FOUND_MESSAGE,
    PromotionLookupError,
    UserDataFetchError,
)

logger = structlog.get_logger(__name__)


class UserProfileSource(Protocol):
    async def fetch_user_profile(self, user_id: str) -> UserProfile: ...


class PromotionSource(Protocol):
    async def lookup_promotion(self, event_id: int, code: str) -> PromotionInstrument: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PurchaseSession:
    def __init__(
        self,
        offer: EventOffer,
        *,
        profile_source: UserProfileSource,
        promotion_source: PromotionSource,
        staging: IntentStaging,
        user_id: str | None = None,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
        max_tickets_per_order: int = MAX_TICKETS_PER_ORDER,
        low_stock_threshold: int = LOW_STOCK_THRESHOLD,
        payment_window: timedelta = PAYMENT_WINDOW,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.offer = offer
        self.tax_rate = tax_rate
        self._profile_source = profile_source
        self._promotion_source = promotion_source
        self._staging = staging
        self._max_tickets_per_order = max_tickets_per_order
        self._low_stock_threshold = low_stock_threshold
        self._payment_window = payment_window
        self._clock = clock

        self.user_id = user_id
        self.user_profile: UserProfile | None = None
        self.is_user_data_loading = False
        self.user_data_error: str | None = None

        self.status = PurchaseSessionStatus.IDLE
        self.selected_tier = ""
        self.quantity = 1
        self.selected_coupon_id = ""
        self.promo_code_input = ""
        self.applied_promotion: PromotionInstrument | None = None
        self.is_applying_promo = False
        self.promo_error: str | None = None
        self.points_input = DEFAULT_POINTS_INPUT
        self.breakdown: PriceBreakdown = EMPTY_PRICE_BREAKDOWN
        self.intent: PurchaseIntent | None = None

        self._promo_request_seq = 0
        self._user_request_seq = 0

    @classmethod
    def from_settings(
        cls,
        offer: EventOffer,
        *,
        profile_source: UserProfileSource,
        promotion_source: PromotionSource,
        user_id: str | None = None,
        settings: Settings | None = None,
    ) -> PurchaseSession:
        settings = settings or get_settings()
        return cls(
            offer,
            profile_source=profile_source,
            promotion_source=promotion_source,
            staging=FileIntentStaging(settings.purchase_staging_path),
            user_id=user_id,
            tax_rate=settings.purchase_tax_rate,
            max_tickets_per_order=settings.purchase_max_tickets_per_order,
            low_stock_threshold=settings.purchase_low_stock_threshold,
            payment_window=timedelta(minutes=settings.purchase_payment_window_minutes),
        )

    # Derived values

    @property
    def remaining_seats(self) -> int:
        return max(0, self.offer.seats)

    @property
    def is_low_stock(self) -> bool:
        return is_low_stock(self.remaining_seats, threshold=self._low_stock_threshold)

    @property
    def max_quantity(self) -> int:
        return max_purchasable_quantity(
            self.remaining_seats,
            max_per_order=self._max_tickets_per_order,
        )

    @property
    def current_tier_price(self) -> int:
        return self.offer.unit_price_for(self.selected_tier)

    @property
    def available_points(self) -> int:
        if self.user_profile is None:
            return 0
        return self.user_profile.points_balance

    @property
    def available_coupons(self) -> tuple[CouponInstrument, ...]:
        if self.user_profile is None:
            return ()
        now_utc = self._clock()
        return tuple(
            coupon
            for coupon in self.user_profile.coupons
            if is_coupon_eligible(coupon, user_id=self.user_id, now_utc=now_utc)
        )

    @property
    def selected_coupon(self) -> CouponInstrument | None:
        if not self.selected_coupon_id:
            return None
        for coupon in self.available_coupons:
            if str(coupon.id) == self.selected_coupon_id:
                return coupon
        return None

    @property
    def points_to_use(self) -> int:
        return validate_points_input(self.points_input, self.available_points)

    # Selection

    def select_tier(self, tier: str) -> None:
        self._ensure_open()
        if tier not in self.offer.tiers:
            raise TierNotFoundError
        self.selected_tier = tier
        self.quantity = 1
        self._reset_discounts()
        self.status = PurchaseSessionStatus.TIER_SELECTED
        self.recompute()

    def set_quantity(self, quantity: int) -> None:
        self._ensure_open()
        self.quantity = clamp_quantity(
            quantity,
            remaining_seats=self.remaining_seats,
            max_per_order=self._max_tickets_per_order,
        )
        self.recompute()

    def increment_quantity(self) -> None:
        self.set_quantity(self.quantity + 1)

    def decrement_quantity(self) -> None:
        self.set_quantity(self.quantity - 1)

    def select_coupon(self, coupon_id: str | int | None) -> None:
        self._ensure_open()
        raw_id = "" if coupon_id is None else str(coupon_id).strip()
        if raw_id.lower() in COUPON_CLEAR_VALUES:
            self.selected_coupon_id = ""
        elif any(str(coupon.id) == raw_id for coupon in self.available_coupons):
            self.selected_coupon_id = raw_id
        else:
            self.selected_coupon_id = ""
        self.recompute()

    # Promotion

    def set_promo_code_input(self, code: str) -> None:
        self._ensure_open()
        self.promo_code_input = code

    async def apply_promo_code(self, code: str | None = None) -> None:
        self._ensure_open()
        if code is not None:
            self.promo_code_input = code
        normalized_code = normalize_promo_code(self.promo_code_input)
        if not normalized_code:
            return
        if not is_well_formed_promo_code(normalized_code):
            self._promo_request_seq += 1
            self.applied_promotion = None
            self._finish_promo(error=PROMO_NOT_FOUND_MESSAGE)
            return

        self._promo_request_seq += 1
        request_seq = self._promo_request_seq
        self.is_applying_promo = True
        self.promo_error = None
        self.applied_promotion = None
        self.recompute()

        try:
            promotion = await self._promotion_source.lookup_promotion(
                self.offer.id, normalized_code
            )
        except PromotionLookupError as exc:
            if request_seq != self._promo_request_seq:
                return
            logger.info(
                "purchase_promo_lookup_failed",
                event_id=self.offer.id,
                error=str(exc),
            )
            self._finish_promo(error=str(exc) or PROMO_ERROR_DEFAULT)
            return
        finally:
            if request_seq == self._promo_request_seq:
                self.is_applying_promo = False

        if request_seq != self._promo_request_seq:
            logger.info(
                "purchase_promo_response_discarded",
                event_id=self.offer.id,
                request_seq=request_seq,
            )
            return

        if not is_promotion_eligible(promotion, event_id=self.offer.id, now_utc=self._clock()):
            self._finish_promo(error=PROMO_ERROR_NOT_ACTIVE)
            return

        self.applied_promotion = promotion
        self.promo_code_input = ""
        self._finish_promo(error=None)

    def clear_promotion(self) -> None:
        self._ensure_open()
        self._promo_request_seq += 1
        self.applied_promotion = None
        self.promo_error = None
        self.promo_code_input = ""
        self.is_applying_promo = False
        self.recompute()

    # Points

    def set_points_input(self, raw_input: str) -> None:
        self._ensure_open()
        self.points_input = digits_only(raw_input) or DEFAULT_POINTS_INPUT
        self.recompute()

    def blur_points_input(self) -> None:
        self._ensure_open()
        self.points_input = str(self.points_to_use)

    # User data

    async def change_user(self, user_id: str | None) -> None:
        self._ensure_open()
        self._user_request_seq += 1
        request_seq = self._user_request_seq
        self.user_id = user_id
        self.user_profile = None
        self.user_data_error = None
        self._reset_discounts()
        self.points_input = DEFAULT_POINTS_INPUT

        if user_id is None:
            self.is_user_data_loading = False
            self.recompute()
            return

        self.is_user_data_loading = True
        self.recompute()
        try:
            profile = await self._profile_source.fetch_user_profile(user_id)
        except UserDataFetchError as exc:
            if request_seq != self._user_request_seq:
                return
            logger.warning("purchase_user_data_fetch_failed", user_id=user_id, error=str(exc))
            self.user_data_error = str(exc) or USER_DATA_ERROR_DEFAULT
            self.is_user_data_loading = False
            self.recompute()
            return

        if request_seq != self._user_request_seq:
            logger.info("purchase_user_data_response_discarded", user_id=user_id)
            return

        self.user_profile = profile
        self.is_user_data_loading = False
        self.recompute()

    # Pricing

    def recompute(self) -> PriceBreakdown:
        coupon = self.selected_coupon
        promotion = self.applied_promotion
        self.breakdown = calculate_price_breakdown(
            PriceCalculationInputs(
                unit_price=self.current_tier_price,
                quantity=self.quantity,
                coupon=coupon.as_discount() if coupon is not None else None,
                promotion=promotion.as_discount() if promotion is not None else None,
                points_to_use=self.points_to_use,
                tax_rate=self.tax_rate,
            )
        )
        return self.breakdown

    # Confirmation

    def confirm_purchase(self) -> PurchaseIntent:
        self._ensure_open()
        try:
            user_id = self._check_confirmation_preconditions()
        except PurchaseConfirmationError as exc:
            logger.info(
                "purchase_confirm_refused",
                event_id=self.offer.id,
                reason=type(exc).__name__,
            )
            raise

        self._promo_request_seq += 1
        self.is_applying_promo = False
        breakdown = self.recompute()
        coupon = self.selected_coupon
        now_utc = self._clock()
        intent = PurchaseIntent(
            event_id=self.offer.id,
            event_title=self.offer.title or "Concert Event",
            event_date=self.offer.start_date,
            event_time=self.offer.time,
            currency=self.offer.currency,
            tier=self.selected_tier,
            quantity=self.quantity,
            unit_price=self.current_tier_price,
            base_price=breakdown.base_price,
            coupon_id=coupon.id if coupon is not None else None,
            coupon_code=coupon.code if coupon is not None else None,
            coupon_discount_amount=breakdown.coupon_discount,
            points_used=self.points_to_use,
            points_discount_amount=breakdown.points_discount,
            promotion_code=self.applied_promotion.code if self.applied_promotion else None,
            promotion_discount_amount=breakdown.promotion_discount,
            tax_amount=breakdown.tax_amount,
            final_price=breakdown.final_price,
            user_id=user_id,
            payment_deadline=now_utc + self._payment_window,
            created_at=now_utc,
        )
        self._staging.stage(intent)
        self.intent = intent
        self.status = PurchaseSessionStatus.CONFIRMED
        logger.info(
            "purchase_intent_staged",
            event_id=intent.event_id,
            user_id=intent.user_id,
            tier=intent.tier,
            quantity=intent.quantity,
            final_price=intent.final_price,
        )
        return intent

    def reset(self) -> None:
        self._promo_request_seq += 1
        self.status = PurchaseSessionStatus.IDLE
        self.selected_tier = ""
        self.quantity = 1
        self._reset_discounts()
        self.points_input = DEFAULT_POINTS_INPUT
        self.is_applying_promo = False
        self.intent = None
        self.recompute()

    def _check_confirmation_preconditions(self) -> str:
        if self.user_id is None:
            raise NotAuthenticatedError
        if not self.selected_tier:
            raise TierNotSelectedError
        if self.quantity <= 0:
            raise InvalidQuantityError
        if self.current_tier_price <= 0:
            raise ZeroPriceError
        return self.user_id

    def _ensure_open(self) -> None:
        if self.status == PurchaseSessionStatus.CONFIRMED:
            raise PurchaseSessionConfirmedError

    def _reset_discounts(self) -> None:
        # Points input survives tier switches.
        self._promo_request_seq += 1
        self.selected_coupon_id = ""
        self.promo_code_input = ""
        self.applied_promotion = None
        self.promo_error = None
        self.is_applying_promo = False

    def _finish_promo(self, *, error: str | None) -> None:
        self.promo_error = error
        self.is_applying_promo = False
        self.recompute()
