from __future__ import annotations

import re

PROMO_CODE_MAX_LENGTH = 64

_PROMO_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_promo_code(raw_code: str) -> str:
    # Codes are matched exactly server-side: keep case and dashes.
    return _PROMO_WHITESPACE_PATTERN.sub("", raw_code or "")


def is_well_formed_promo_code(normalized_code: str) -> bool:
    return 0 < len(normalized_code) <= PROMO_CODE_MAX_LENGTH
