"""Health check router endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_provider_store
from oidc_cache.store import ProviderStore

router = APIRouter(prefix="/health", tags=["health"])


async def check_store_ready(
    store: Annotated[ProviderStore, Depends(get_provider_store)],
) -> bool:
    """Return True when the provider store is running or intentionally disabled."""
    return store.disabled or store.running


@router.get("/live")
async def live() -> dict[str, str]:
    """Liveness check endpoint."""
    return {"status": "live"}


@router.get("/ready")
async def ready(store_ready: Annotated[bool, Depends(check_store_ready)]) -> dict[str, str]:
    """Readiness check requiring the provider store owner task."""
    if not store_ready:
        raise HTTPException(
            status_code=503,
            detail={"detail": "Service not ready.", "code": "service_unavailable"},
        )
    return {"status": "ready"}
