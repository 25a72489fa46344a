from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import timedelta

import pytest

from app.economy.pricing.types import DiscountType
from app.economy.purchases.constants import PROMO_ERROR_NOT_ACTIVE
from app.economy.purchases.errors import (
    NotAuthenticatedError,
    PurchaseSessionConfirmedError,
    TierNotFoundError,
    TierNotSelectedError,
    ZeroPriceError,
)
from app.economy.purchases.staging import InMemoryIntentStaging
from app.economy.purchases.types import PurchaseSessionStatus, UserProfile
from app.services.ticketing_api_errors import PROMO_NOT_FOUND_MESSAGE
from tests.economy.purchase_fixtures import (
    EVENT_ID,
    NOW_UTC,
    USER_ID,
    FakeProfileSource,
    FakePromotionSource,
    make_coupon,
    make_offer,
    make_promotion,
    make_session,
    make_signed_in_session,
)


def test_new_session_is_idle_with_empty_breakdown() -> None:
    session = make_session()

    assert session.status == PurchaseSessionStatus.IDLE
    assert session.quantity == 1
    assert session.points_input == "0"
    assert session.breakdown.final_price == 0


def test_select_tier_prices_one_ticket() -> None:
    session = make_session()

    session.select_tier("REGULAR")

    assert session.status == PurchaseSessionStatus.TIER_SELECTED
    assert session.current_tier_price == 100000
    assert session.breakdown.base_price == 100000
    assert session.breakdown.final_price == 110000


def test_select_unknown_tier_is_rejected() -> None:
    session = make_session()

    with pytest.raises(TierNotFoundError):
        session.select_tier("BALCONY")
    assert session.selected_tier == ""


@pytest.mark.asyncio
async def test_tier_switch_clears_selected_coupon() -> None:
    session = await make_signed_in_session(coupons=(make_coupon(11),))
    session.select_tier("REGULAR")
    session.select_coupon(11)
    assert session.breakdown.coupon_discount == 10000

    session.select_tier("VIP")

    assert session.selected_coupon_id == ""
    assert session.selected_coupon is None
    assert session.breakdown.coupon_discount == 0
    assert session.breakdown.final_price == 385000


@pytest.mark.asyncio
async def test_tier_switch_resets_quantity_and_promotion_but_keeps_points() -> None:
    session = await make_signed_in_session(promotions={"PROMO-SPRING": make_promotion()})
    session.select_tier("REGULAR")
    session.set_quantity(4)
    session.set_points_input("200")
    await session.apply_promo_code("PROMO-SPRING")
    assert session.applied_promotion is not None

    session.select_tier("VIP")

    assert session.quantity == 1
    assert session.applied_promotion is None
    assert session.promo_code_input == ""
    assert session.points_input == "200"
    assert session.breakdown.points_discount == 200


def test_quantity_is_clamped_to_per_order_limit() -> None:
    session = make_session()
    session.select_tier("REGULAR")

    session.set_quantity(15)

    assert session.quantity == 10
    assert session.breakdown.base_price == 1_000_000


def test_quantity_is_clamped_to_remaining_seats() -> None:
    session = make_session(offer=make_offer(seats=3))
    session.select_tier("REGULAR")

    session.increment_quantity()
    session.increment_quantity()
    session.increment_quantity()

    assert session.quantity == 3
    assert session.max_quantity == 3


def test_quantity_never_drops_below_one() -> None:
    session = make_session()
    session.select_tier("REGULAR")

    session.decrement_quantity()

    assert session.quantity == 1


def test_sold_out_offer_keeps_quantity_at_one() -> None:
    session = make_session(offer=make_offer(seats=0))
    session.select_tier("REGULAR")

    session.set_quantity(5)

    assert session.quantity == 1
    assert session.max_quantity == 0
    assert session.is_low_stock is False


def test_low_stock_flag() -> None:
    assert make_session(offer=make_offer(seats=20)).is_low_stock is True
    assert make_session(offer=make_offer(seats=50)).is_low_stock is False


@pytest.mark.asyncio
async def test_available_coupons_hide_used_and_expired_coupons() -> None:
    usable = make_coupon(11)
    used = make_coupon(12, is_used=True)
    expired = make_coupon(13, expires_at=NOW_UTC - timedelta(minutes=1))
    session = await make_signed_in_session(coupons=(usable, used, expired))

    assert session.available_coupons == (usable,)


@pytest.mark.asyncio
async def test_selecting_ineligible_coupon_clears_selection() -> None:
    session = await make_signed_in_session(
        coupons=(make_coupon(11), make_coupon(12, is_used=True))
    )
    session.select_tier("REGULAR")
    session.select_coupon("11")

    session.select_coupon("12")

    assert session.selected_coupon_id == ""
    assert session.breakdown.coupon_discount == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("clear_value", [None, "", "none", "NONE"])
async def test_coupon_clear_values(clear_value: str | None) -> None:
    session = await make_signed_in_session(coupons=(make_coupon(11),))
    session.select_tier("REGULAR")
    session.select_coupon(11)

    session.select_coupon(clear_value)

    assert session.selected_coupon is None
    assert session.breakdown.final_price == 110000


@pytest.mark.asyncio
async def test_fixed_amount_coupon_applies_to_breakdown() -> None:
    coupon = make_coupon(21, discount=25000, discount_type=DiscountType.FIXED_AMOUNT)
    session = await make_signed_in_session(coupons=(coupon,))
    session.select_tier("REGULAR")
    session.set_quantity(2)

    session.select_coupon(21)

    assert session.breakdown.coupon_discount == 25000
    assert session.breakdown.subtotal_before_tax == 175000
    assert session.breakdown.final_price == 192500


@pytest.mark.asyncio
async def test_apply_promo_code_success() -> None:
    promotions = FakePromotionSource({"PROMO-SPRING": make_promotion()})
    session = make_session(promotion_source=promotions)
    session.select_tier("REGULAR")
    session.set_promo_code_input("  PROMO-SPRING ")

    await session.apply_promo_code()

    assert promotions.calls == [(EVENT_ID, "PROMO-SPRING")]
    assert session.applied_promotion is not None
    assert session.applied_promotion.code == "PROMO-SPRING"
    assert session.promo_code_input == ""
    assert session.promo_error is None
    assert session.is_applying_promo is False
    assert session.breakdown.promotion_discount == 15000
    assert session.breakdown.final_price == 93500


@pytest.mark.asyncio
async def test_apply_unknown_promo_code_sets_error() -> None:
    session = make_session()
    session.select_tier("REGULAR")

    await session.apply_promo_code("NOPE")

    assert session.applied_promotion is None
    assert session.promo_error == PROMO_NOT_FOUND_MESSAGE
    assert session.promo_code_input == "NOPE"
    assert session.is_applying_promo is False
    assert session.breakdown.promotion_discount == 0


@pytest.mark.asyncio
async def test_apply_expired_promotion_sets_not_active_error() -> None:
    expired = make_promotion("OLD", end_date=NOW_UTC - timedelta(days=1))
    session = make_session(promotion_source=FakePromotionSource({"OLD": expired}))
    session.select_tier("REGULAR")

    await session.apply_promo_code("OLD")

    assert session.applied_promotion is None
    assert session.promo_error == PROMO_ERROR_NOT_ACTIVE


@pytest.mark.asyncio
async def test_apply_promotion_for_another_event_is_rejected() -> None:
    foreign = make_promotion("ELSEWHERE", event_id=EVENT_ID + 1)
    session = make_session(promotion_source=FakePromotionSource({"ELSEWHERE": foreign}))
    session.select_tier("REGULAR")

    await session.apply_promo_code("ELSEWHERE")

    assert session.applied_promotion is None
    assert session.promo_error == PROMO_ERROR_NOT_ACTIVE


@pytest.mark.asyncio
async def test_blank_promo_code_is_ignored() -> None:
    promotions = FakePromotionSource()
    session = make_session(promotion_source=promotions)

    await session.apply_promo_code("   ")

    assert promotions.calls == []
    assert session.promo_error is None


@pytest.mark.asyncio
async def test_oversized_promo_code_is_rejected_without_lookup() -> None:
    promotions = FakePromotionSource()
    session = make_session(promotion_source=promotions)

    await session.apply_promo_code("X" * 65)

    assert promotions.calls == []
    assert session.promo_error == PROMO_NOT_FOUND_MESSAGE


@pytest.mark.asyncio
async def test_stale_promo_response_is_discarded() -> None:
    promotions = FakePromotionSource(
        {
            "SLOW": make_promotion("SLOW", discount=50),
            "FAST": make_promotion("FAST", discount=10),
        }
    )
    promotions.gates["SLOW"] = asyncio.Event()
    session = make_session(promotion_source=promotions)
    session.select_tier("REGULAR")

    slow_apply = asyncio.create_task(session.apply_promo_code("SLOW"))
    await asyncio.sleep(0)
    assert session.is_applying_promo is True

    await session.apply_promo_code("FAST")
    promotions.gates["SLOW"].set()
    await slow_apply

    assert session.applied_promotion is not None
    assert session.applied_promotion.code == "FAST"
    assert session.breakdown.promotion_discount == 10000


@pytest.mark.asyncio
async def test_clear_promotion_discards_in_flight_lookup() -> None:
    promotions = FakePromotionSource({"SLOW": make_promotion("SLOW")})
    promotions.gates["SLOW"] = asyncio.Event()
    session = make_session(promotion_source=promotions)
    session.select_tier("REGULAR")

    pending = asyncio.create_task(session.apply_promo_code("SLOW"))
    await asyncio.sleep(0)
    session.clear_promotion()
    promotions.gates["SLOW"].set()
    await pending

    assert session.applied_promotion is None
    assert session.is_applying_promo is False
    assert session.breakdown.promotion_discount == 0


@pytest.mark.asyncio
async def test_points_input_is_clamped_for_pricing_and_snapped_on_blur() -> None:
    session = await make_signed_in_session(points_balance=500)
    session.select_tier("REGULAR")

    session.set_points_input("10000")

    assert session.points_input == "10000"
    assert session.points_to_use == 500
    assert session.breakdown.points_discount == 500

    session.blur_points_input()

    assert session.points_input == "500"


@pytest.mark.asyncio
async def test_points_input_strips_non_digits() -> None:
    session = await make_signed_in_session(points_balance=500)
    session.select_tier("REGULAR")

    session.set_points_input("abc")
    assert session.points_input == "0"

    session.set_points_input("1a2b")
    assert session.points_input == "12"
    assert session.breakdown.points_discount == 12


def test_points_are_ignored_without_profile() -> None:
    session = make_session()
    session.select_tier("REGULAR")

    session.set_points_input("300")

    assert session.available_points == 0
    assert session.breakdown.points_discount == 0


@pytest.mark.asyncio
async def test_change_user_loads_profile() -> None:
    session = await make_signed_in_session(points_balance=750, coupons=(make_coupon(11),))

    assert session.user_id == USER_ID
    assert session.is_user_data_loading is False
    assert session.user_data_error is None
    assert session.available_points == 750
    assert [coupon.id for coupon in session.available_coupons] == [11]


@pytest.mark.asyncio
async def test_change_user_failure_keeps_purchase_usable() -> None:
    session = make_session(profile_source=FakeProfileSource())
    session.select_tier("REGULAR")

    await session.change_user("ghost")

    assert session.user_data_error == "Failed to fetch user data (Status: 500)"
    assert session.is_user_data_loading is False
    assert session.available_points == 0
    assert session.available_coupons == ()
    assert session.breakdown.final_price == 110000


@pytest.mark.asyncio
async def test_sign_out_drops_profile_and_discounts() -> None:
    session = await make_signed_in_session(coupons=(make_coupon(11),))
    session.select_tier("REGULAR")
    session.select_coupon(11)
    session.set_points_input("100")

    await session.change_user(None)

    assert session.user_id is None
    assert session.user_profile is None
    assert session.selected_coupon_id == ""
    assert session.points_input == "0"
    assert session.breakdown.final_price == 110000


@pytest.mark.asyncio
async def test_stale_user_profile_response_is_discarded() -> None:
    profiles = FakeProfileSource(
        {
            "first": UserProfile(user_id="first", points_balance=10),
            USER_ID: UserProfile(user_id=USER_ID, points_balance=900),
        }
    )
    profiles.gates["first"] = asyncio.Event()
    session = make_session(profile_source=profiles)

    first_load = asyncio.create_task(session.change_user("first"))
    await asyncio.sleep(0)
    assert session.is_user_data_loading is True

    await session.change_user(USER_ID)
    profiles.gates["first"].set()
    await first_load

    assert session.user_id == USER_ID
    assert session.available_points == 900
    assert session.is_user_data_loading is False


def test_confirm_requires_signed_in_user() -> None:
    session = make_session()
    session.select_tier("REGULAR")

    with pytest.raises(NotAuthenticatedError):
        session.confirm_purchase()
    assert session.status == PurchaseSessionStatus.TIER_SELECTED


@pytest.mark.asyncio
async def test_confirm_requires_selected_tier() -> None:
    session = await make_signed_in_session()

    with pytest.raises(TierNotSelectedError):
        session.confirm_purchase()


@pytest.mark.asyncio
async def test_confirm_rejects_free_tier() -> None:
    session = await make_signed_in_session(offer=make_offer(prices={"FREE": 0}))
    session.select_tier("FREE")

    with pytest.raises(ZeroPriceError):
        session.confirm_purchase()


@pytest.mark.asyncio
async def test_confirm_stages_full_intent() -> None:
    staging = InMemoryIntentStaging()
    session = await make_signed_in_session(
        points_balance=1000,
        coupons=(make_coupon(11),),
        promotions={"PROMO-SPRING": make_promotion()},
        staging=staging,
    )
    session.select_tier("VIP")
    session.set_quantity(2)
    session.select_coupon(11)
    await session.apply_promo_code("PROMO-SPRING")
    session.set_points_input("1000")

    intent = session.confirm_purchase()

    assert session.status == PurchaseSessionStatus.CONFIRMED
    assert session.intent == intent
    assert intent.event_id == EVENT_ID
    assert intent.event_title == "Jazz Night"
    assert intent.tier == "VIP"
    assert intent.quantity == 2
    assert intent.unit_price == 350000
    assert intent.base_price == 700000
    assert intent.coupon_id == 11
    assert intent.coupon_code == "REF-11"
    assert intent.coupon_discount_amount == 70000
    assert intent.promotion_code == "PROMO-SPRING"
    assert intent.promotion_discount_amount == 105000
    assert intent.points_used == 1000
    assert intent.points_discount_amount == 1000
    assert intent.tax_amount == 52400
    assert intent.final_price == 576400
    assert intent.user_id == USER_ID
    assert intent.created_at == NOW_UTC
    assert intent.payment_deadline == NOW_UTC + timedelta(hours=2)
    assert staging.read() == intent


@pytest.mark.asyncio
async def test_confirm_uses_fallback_event_title() -> None:
    untitled = replace(make_offer(), title="")
    session = await make_signed_in_session(offer=untitled)
    session.select_tier("REGULAR")

    assert session.confirm_purchase().event_title == "Concert Event"


@pytest.mark.asyncio
async def test_confirmed_session_rejects_further_edits() -> None:
    session = await make_signed_in_session()
    session.select_tier("REGULAR")
    session.confirm_purchase()

    with pytest.raises(PurchaseSessionConfirmedError):
        session.select_tier("VIP")
    with pytest.raises(PurchaseSessionConfirmedError):
        session.set_quantity(2)
    with pytest.raises(PurchaseSessionConfirmedError):
        session.confirm_purchase()


@pytest.mark.asyncio
async def test_promo_lookup_finishing_after_confirm_is_ignored() -> None:
    promotions = FakePromotionSource({"SLOW": make_promotion("SLOW")})
    promotions.gates["SLOW"] = asyncio.Event()
    session = make_session(
        profile_source=FakeProfileSource({USER_ID: UserProfile(user_id=USER_ID)}),
        promotion_source=promotions,
    )
    await session.change_user(USER_ID)
    session.select_tier("REGULAR")

    pending = asyncio.create_task(session.apply_promo_code("SLOW"))
    await asyncio.sleep(0)
    intent = session.confirm_purchase()
    promotions.gates["SLOW"].set()
    await pending

    assert intent.promotion_code is None
    assert session.applied_promotion is None
    assert session.breakdown.final_price == intent.final_price


@pytest.mark.asyncio
async def test_reset_reopens_confirmed_session() -> None:
    session = await make_signed_in_session()
    session.select_tier("REGULAR")
    session.confirm_purchase()

    session.reset()

    assert session.status == PurchaseSessionStatus.IDLE
    assert session.intent is None
    assert session.breakdown.final_price == 0
    session.select_tier("VIP")
    assert session.breakdown.base_price == 350000


@pytest.mark.asyncio
async def test_confirmed_session_rejects_user_change() -> None:
    session = await make_signed_in_session(points_balance=500)
    session.select_tier("REGULAR")
    session.set_points_input("400")
    intent = session.confirm_purchase()

    with pytest.raises(PurchaseSessionConfirmedError):
        await session.change_user(None)

    assert session.status == PurchaseSessionStatus.CONFIRMED
    assert session.user_id == USER_ID
    assert session.intent == intent
    assert session.breakdown.final_price == intent.final_price == 109560


@pytest.mark.asyncio
async def test_user_change_allowed_again_after_reset() -> None:
    session = await make_signed_in_session()
    session.select_tier("REGULAR")
    session.confirm_purchase()
    session.reset()

    await session.change_user(None)

    assert session.user_id is None
    assert session.status == PurchaseSessionStatus.IDLE


@pytest.mark.asyncio
async def test_unexpected_promo_source_failure_clears_applying_flag() -> None:
    class _BrokenPromotionSource:
        async def lookup_promotion(self, event_id: int, code: str):
            del event_id, code
            raise RuntimeError("connection pool exhausted")

    session = make_session(promotion_source=_BrokenPromotionSource())  # type: ignore[arg-type]
    session.select_tier("REGULAR")

    with pytest.raises(RuntimeError):
        await session.apply_promo_code("PROMO-SPRING")

    assert session.is_applying_promo is False
    assert session.applied_promotion is None
    assert session.breakdown.final_price == 110000
