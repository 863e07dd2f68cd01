"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import Settings, configure_structlog, get_settings
from app.error_handlers import register_exception_handlers
from app.middleware import RequestContextMiddleware
from app.routers import health, providers
from oidc_cache.fetcher import DocumentFetcher, HTTPDocumentFetcher
from oidc_cache.store import ProviderStore


def create_app(
    settings: Settings | None = None,
    fetcher: DocumentFetcher | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_structlog(settings)
    openid_connect = settings.openid_connect

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Own the provider store and its fetcher for the application lifetime."""
        http_fetcher = (
            HTTPDocumentFetcher(timeout=openid_connect.fetch_timeout_seconds)
            if fetcher is None
            else None
        )
        store = ProviderStore(
            openid_connect.store_providers(),
            fetcher or http_fetcher,
            default_interval_ms=openid_connect.refresh_interval_ms,
        )
        app.state.provider_store = store
        await store.start()
        try:
            yield
        finally:
            await store.stop()
            if http_fetcher is not None:
                await http_fetcher.aclose()

    app = FastAPI(title=settings.app.service, lifespan=lifespan)
    register_exception_handlers(app, environment=settings.app.environment)
    app.add_middleware(RequestContextMiddleware)
    app.include_router(providers.router)
    app.include_router(health.router)
    return app


app = create_app()
