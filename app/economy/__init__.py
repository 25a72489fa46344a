from app.economy.pricing import calculate_price_breakdown, validate_points_input
from app.economy.purchases import PurchaseSession, verify_purchase_intent

__all__ = [
    "PurchaseSession",
    "calculate_price_breakdown",
    "validate_points_input",
    "verify_purchase_intent",
]
