"""Shared FastAPI dependency helpers."""

from fastapi import Request

from oidc_cache.store import ProviderStore


def get_provider_store(request: Request) -> ProviderStore:
    """Expose the process-wide provider store created at application startup."""
    return request.app.state.provider_store
