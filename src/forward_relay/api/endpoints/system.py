"""Liveness and service information endpoints."""

from __future__ import annotations

import time

from fastapi import APIRouter

from forward_relay.core.settings import settings
from forward_relay.schemas import HealthResponse

router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report that the service is up and which address it relays from."""
    return HealthResponse(status="ok", relayer=settings.relayer_address, timestamp=int(time.time()))


@router.get("/")
async def root() -> dict[str, object]:
    """Root endpoint with basic information about the relay."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "chainId": settings.chain_id,
        "hub": settings.hub_address,
        "target": settings.target_contract,
        "docs": "/docs",
    }
