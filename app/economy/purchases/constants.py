from __future__ import annotations

from datetime import timedelta

PAYMENT_WINDOW = timedelta(hours=2)
COUPON_CLEAR_VALUES = frozenset({"", "none"})
PROMO_ERROR_DEFAULT = "Failed to apply promotional code"
PROMO_ERROR_NOT_ACTIVE = "Promotion is not active or has expired"
USER_DATA_ERROR_DEFAULT = "Could not load points/coupons."
DEFAULT_POINTS_INPUT = "0"
