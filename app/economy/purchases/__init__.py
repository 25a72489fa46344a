from app.economy.purchases.checkout import verify_purchase_intent
from app.economy.purchases.handoff import cancel_staged_intent, submit_staged_intent
from app.economy.purchases.session import PurchaseSession
from app.economy.purchases.staging import FileIntentStaging, InMemoryIntentStaging, IntentStaging
from app.economy.purchases.types import (
    EventOffer,
    PurchaseIntent,
    PurchaseSessionStatus,
    UserProfile,
)

__all__ = [
    "EventOffer",
    "FileIntentStaging",
    "InMemoryIntentStaging",
    "IntentStaging",
    "PurchaseIntent",
    "PurchaseSession",
    "PurchaseSessionStatus",
    "UserProfile",
    "cancel_staged_intent",
    "submit_staged_intent",
    "verify_purchase_intent",
]
