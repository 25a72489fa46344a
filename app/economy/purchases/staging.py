from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, Field

from app.economy.purchases.errors import StagedIntentMismatchError
from app.economy.purchases.types import PurchaseIntent

logger = structlog.get_logger(__name__)


class StagedPurchaseIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: int
    event_title: str
    event_date: str
    event_time: str
    currency: str
    tier: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    unit_price: int = Field(ge=0)
    base_price: int = Field(ge=0)
    coupon_id: int | None = None
    coupon_code: str | None = None
    coupon_discount_amount: int = Field(default=0, ge=0)
    points_used: int = Field(default=0, ge=0)
    points_discount_amount: int = Field(default=0, ge=0)
    promotion_code: str | None = None
    promotion_discount_amount: int = Field(default=0, ge=0)
    tax_amount: int = Field(default=0, ge=0)
    final_price: int = Field(ge=0)
    user_id: str
    payment_deadline: datetime
    created_at: datetime

    @classmethod
    def from_intent(cls, intent: PurchaseIntent) -> StagedPurchaseIntent:
        return cls(**asdict(intent))

    def to_intent(self) -> PurchaseIntent:
        return PurchaseIntent(**self.model_dump())


class IntentStaging(ABC):
    @abstractmethod
    def stage(self, intent: PurchaseIntent) -> None: ...

    @abstractmethod
    def read(self) -> PurchaseIntent | None: ...

    @abstractmethod
    def discard(self) -> None: ...

    def load(self, *, event_id: int) -> PurchaseIntent | None:
        intent = self.read()
        if intent is None:
            return None
        if intent.event_id != event_id:
            raise StagedIntentMismatchError
        return intent


class InMemoryIntentStaging(IntentStaging):
    def __init__(self) -> None:
        self._payload: str | None = None

    def stage(self, intent: PurchaseIntent) -> None:
        self._payload = StagedPurchaseIntent.from_intent(intent).model_dump_json()

    def read(self) -> PurchaseIntent | None:
        if self._payload is None:
            return None
        return StagedPurchaseIntent.model_validate_json(self._payload).to_intent()

    def discard(self) -> None:
        self._payload = None


class FileIntentStaging(IntentStaging):
    """Keeps the pending purchase on disk so it outlives the session object."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def stage(self, intent: PurchaseIntent) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(
            StagedPurchaseIntent.from_intent(intent).model_dump_json(),
            encoding="utf-8",
        )
        os.replace(tmp_path, self._path)

    def read(self) -> PurchaseIntent | None:
        if not self._path.exists():
            return None
        raw = self._path.read_text(encoding="utf-8")
        try:
            return StagedPurchaseIntent.model_validate_json(raw).to_intent()
        except ValueError:
            logger.warning("purchase_staged_intent_unreadable", path=str(self._path))
            return None

    def discard(self) -> None:
        self._path.unlink(missing_ok=True)
