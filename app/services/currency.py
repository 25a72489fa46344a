from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

NBSP = "\u00a0"

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}
ZERO_DECIMAL_CURRENCIES = frozenset({"IDR", "JPY", "KRW", "VND"})


def _group_digits(integer_part: str, separator: str) -> str:
    groups: list[str] = []
    while len(integer_part) > 3:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    groups.insert(0, integer_part)
    return separator.join(groups)


def _split_amount(amount: int | Decimal, decimals: int) -> tuple[bool, str, str]:
    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)
    negative = rounded < 0
    text = f"{abs(rounded):.{decimals}f}"
    integer_part, _, fraction = text.partition(".")
    return negative, integer_part, fraction


def format_currency(amount: int | Decimal, currency_code: str = "USD") -> str:
    code = (currency_code or "USD").upper()

    if code == "IDR":
        negative, integer_part, _ = _split_amount(amount, 0)
        body = f"Rp{NBSP}{_group_digits(integer_part, '.')}"
        return f"-{body}" if negative else body

    decimals = 0 if code in ZERO_DECIMAL_CURRENCIES else 2
    negative, integer_part, fraction = _split_amount(amount, decimals)
    number = _group_digits(integer_part, ",")
    if fraction:
        number = f"{number}.{fraction}"
    symbol = CURRENCY_SYMBOLS.get(code)
    body = f"{symbol}{number}" if symbol else f"{code}{NBSP}{number}"
    return f"-{body}" if negative else body
