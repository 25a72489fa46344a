from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from app.core.config import Settings, get_settings
from app.economy.pricing.types import PromotionInstrument
from app.economy.purchases.types import PurchaseIntent, UserProfile
from app.services.ticketing_api_errors import (
    PROMO_NOT_FOUND_MESSAGE,
    PromotionLookupError,
    PromotionNotFoundError,
    TransactionCreationError,
    UserDataFetchError,
)
from app.services.ticketing_api_models import (
    PromotionPayload,
    TransactionCreatedPayload,
    UserProfilePayload,
)

logger = structlog.get_logger("app.services.ticketing_api")


def create_http_client(settings: Settings | None = None) -> httpx.AsyncClient:
    settings = settings or get_settings()
    return httpx.AsyncClient(
        base_url=settings.ticketing_api_base_url,
        timeout=settings.ticketing_api_timeout_seconds,
    )


def _error_message(response: httpx.Response, *, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return default


class TicketingApiClient:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch_user_profile(self, user_id: str) -> UserProfile:
        try:
            response = await self._client.get(f"/api/user/{quote(user_id, safe='')}")
        except httpx.HTTPError as exc:
            logger.warning("ticketing_api_user_fetch_transport_failed", user_id=user_id)
            raise UserDataFetchError("Could not load points/coupons.") from exc

        if response.is_error:
            raise UserDataFetchError(
                f"Failed to fetch user data (Status: {response.status_code})"
            )

        try:
            return UserProfilePayload.model_validate(response.json()).to_domain()
        except (ValueError, ValidationError) as exc:
            logger.warning("ticketing_api_user_payload_invalid", user_id=user_id)
            raise UserDataFetchError("Could not load points/coupons.") from exc

    async def lookup_promotion(self, event_id: int, code: str) -> PromotionInstrument:
        try:
            response = await self._client.get(
                f"/api/events/{event_id}/promotions",
                params={"eventId": event_id, "code": code},
            )
        except httpx.HTTPError as exc:
            logger.warning("ticketing_api_promo_transport_failed", event_id=event_id)
            raise PromotionLookupError("Failed to apply promotional code") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise PromotionNotFoundError(
                _error_message(response, default=PROMO_NOT_FOUND_MESSAGE)
            )
        if response.is_error:
            raise PromotionLookupError(_error_message(response, default=PROMO_NOT_FOUND_MESSAGE))

        try:
            return PromotionPayload.model_validate(response.json()).to_domain()
        except (ValueError, ValidationError) as exc:
            logger.warning("ticketing_api_promo_payload_invalid", event_id=event_id)
            raise PromotionLookupError("Internal error: Invalid promotion data") from exc

    async def create_transaction(self, intent: PurchaseIntent) -> str:
        body: dict[str, Any] = intent.as_transaction_request()
        try:
            response = await self._client.post("/api/transactions", json=body)
        except httpx.HTTPError as exc:
            logger.exception("ticketing_api_transaction_transport_failed", event_id=intent.event_id)
            raise TransactionCreationError("Failed to process transaction") from exc

        if response.is_error:
            raise TransactionCreationError(
                _error_message(response, default="Failed to create transaction")
            )

        try:
            transaction_id = TransactionCreatedPayload.model_validate(
                response.json()
            ).transaction_id()
        except (ValueError, ValidationError) as exc:
            raise TransactionCreationError("Failed to create transaction") from exc
        if transaction_id is None:
            raise TransactionCreationError(
                "Transaction created, but failed to get transaction ID."
            )
        return transaction_id
