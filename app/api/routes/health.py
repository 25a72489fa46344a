from __future__ import annotations

import asyncio
from typing import Any

import httpx
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.economy.pricing.engine import calculate_price_breakdown
from app.economy.pricing.types import PriceCalculationInputs

router = APIRouter(tags=["health"])

_SELF_CHECK_INPUTS = PriceCalculationInputs(unit_price=100000, quantity=2)
_SELF_CHECK_FINAL_PRICE = 220000


def _ok_check(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"status": "ok"}
    if extra:
        payload.update(extra)
    return payload


def _failed_check(error: str) -> dict[str, str]:
    return {"status": "failed", "error": error}


async def _check_ticketing_api() -> dict[str, Any]:
    settings = get_settings()
    try:
        async with httpx.AsyncClient(
            base_url=settings.ticketing_api_base_url,
            timeout=settings.ticketing_api_timeout_seconds,
        ) as client:
            response = await client.get("/")
        if response.status_code >= 500:
            return _failed_check("ticketing_api_unhealthy")
        return _ok_check()
    except Exception:
        return _failed_check("ticketing_api_unavailable")


async def _check_pricing_engine() -> dict[str, Any]:
    breakdown = calculate_price_breakdown(_SELF_CHECK_INPUTS)
    if breakdown.final_price != _SELF_CHECK_FINAL_PRICE:
        return _failed_check("pricing_self_check_mismatch")
    return _ok_check()


async def _collect_checks() -> dict[str, dict[str, Any]]:
    checks = await asyncio.gather(
        _check_pricing_engine(),
        _check_ticketing_api(),
    )
    return {
        "pricing": checks[0],
        "ticketing_api": checks[1],
    }


def _all_checks_ok(checks: dict[str, dict[str, Any]]) -> bool:
    return all(check.get("status") == "ok" for check in checks.values())


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health")
async def health() -> JSONResponse:
    checks = await _collect_checks()
    is_healthy = _all_checks_ok(checks)
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ok" if is_healthy else "degraded",
            "checks": checks,
        },
    )
