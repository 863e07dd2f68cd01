"""Integration tests for the application factory and its store lifecycle."""

from __future__ import annotations

import pytest
from authlib.jose import KeySet
from httpx import ASGITransport, AsyncClient

from app.config import AppSettings, OpenIDConnectSettings, Settings
from app.main import create_app
from oidc_cache.types import ProviderConfig, TenantDocuments


class _FetcherStub:
    """Fetcher returning empty key sets."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def fetch(self, uri: str) -> TenantDocuments:
        """Record the URI and return deterministic documents."""
        self.calls.append(uri)
        return TenantDocuments(discovery_document={"issuer": uri}, jwk=KeySet([]))


def _settings(enabled: bool = True) -> Settings:
    return Settings(
        app=AppSettings(environment="development"),
        openid_connect=OpenIDConnectSettings(
            enabled=enabled,
            providers={
                "single": ProviderConfig(
                    discovery_document_uri="https://single.local/.well-known/openid-configuration"
                )
            },
        ),
    )


@pytest.mark.asyncio
async def test_lifespan_starts_store_and_routes_serve_cached_documents() -> None:
    """Startup fetches configured providers and requests carry correlation IDs."""
    fetcher = _FetcherStub()
    app = create_app(settings=_settings(), fetcher=fetcher)

    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://testserver"
        ) as client:
            ready = await client.get("/health/ready")
            jwks = await client.get(
                "/providers/single/jwks", headers={"X-Correlation-ID": "corr-123"}
            )
        store = app.state.provider_store
        assert store.running

    assert not store.running
    assert ready.status_code == 200
    assert jwks.status_code == 200
    assert jwks.json() == {"keys": []}
    assert jwks.headers["X-Correlation-ID"] == "corr-123"
    assert fetcher.calls == ["https://single.local/.well-known/openid-configuration"]


@pytest.mark.asyncio
async def test_disabled_settings_skip_store_initialization() -> None:
    """A disabled configuration starts no store yet stays ready."""
    fetcher = _FetcherStub()
    app = create_app(settings=_settings(enabled=False), fetcher=fetcher)

    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://testserver"
        ) as client:
            ready = await client.get("/health/ready")
            config = await client.get("/providers/single/config")

    assert ready.status_code == 200
    assert config.status_code == 404
    assert config.json()["code"] == "provider_not_found"
    assert fetcher.calls == []


def test_app_settings_declare_only_consumed_fields() -> None:
    """Bind address and port are left to the ASGI server command line."""
    assert set(AppSettings.model_fields) == {"environment", "service", "log_level"}
