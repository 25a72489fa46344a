from __future__ import annotations

from decimal import Decimal

DEFAULT_TAX_RATE = Decimal("0.10")
MAX_TICKETS_PER_ORDER = 10
LOW_STOCK_THRESHOLD = 50
PERCENT_BASE = 100
