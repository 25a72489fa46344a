from __future__ import annotations

from typing import Protocol

import structlog

from app.economy.purchases.errors import StagedIntentMissingError
from app.economy.purchases.staging import IntentStaging
from app.economy.purchases.types import PurchaseIntent

logger = structlog.get_logger(__name__)


class TransactionSink(Protocol):
    async def create_transaction(self, intent: PurchaseIntent) -> str: ...


async def submit_staged_intent(
    staging: IntentStaging,
    sink: TransactionSink,
    *,
    event_id: int,
) -> str:
    intent = staging.load(event_id=event_id)
    if intent is None:
        raise StagedIntentMissingError

    transaction_id = await sink.create_transaction(intent)
    staging.discard()
    logger.info(
        "purchase_intent_submitted",
        event_id=intent.event_id,
        user_id=intent.user_id,
        transaction_id=transaction_id,
    )
    return transaction_id


def cancel_staged_intent(staging: IntentStaging) -> None:
    staging.discard()
