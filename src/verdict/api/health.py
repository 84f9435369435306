"""Liveness and readiness endpoints."""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Request

from verdict import __version__
from verdict.pipeline.machine import MIN_RESPONSES

router = APIRouter(tags=["health"])

_STARTED = time.monotonic()


@router.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/health/detailed")
async def health_detailed(request: Request) -> dict[str, Any]:
    """Version, uptime and the providers with a registered gateway.

    A run needs at least two answers, so fewer registered providers
    is reported as ``degraded``.
    """
    gateways = request.app.state.gateways
    providers = [pid.value for pid in gateways.provider_ids] if gateways else []
    return {
        "status": "ok" if len(providers) >= MIN_RESPONSES else "degraded",
        "version": __version__,
        "uptime_seconds": round(time.monotonic() - _STARTED, 1),
        "providers": providers,
    }
