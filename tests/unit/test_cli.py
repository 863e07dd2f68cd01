"""Unit tests for operational CLI commands."""

from __future__ import annotations

import json
from typing import Any

from authlib.jose import KeySet

from app import cli as cli_module
from app.config import OpenIDConnectSettings, Settings
from oidc_cache.exceptions import DocumentFetchError
from oidc_cache.types import MultiTenantSettings, ProviderConfig, TenantDocuments


class _FetcherStub:
    """Async-context fetcher stub standing in for HTTPDocumentFetcher."""

    fail = False

    def __init__(self, timeout: Any = None) -> None:
        self.timeout = timeout

    async def __aenter__(self) -> _FetcherStub:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None

    async def fetch(self, uri: str) -> TenantDocuments:
        """Return documents, or fail when the class flag is set."""
        if self.fail:
            raise DocumentFetchError("Identity provider unavailable.", uri, 503)
        return TenantDocuments(
            discovery_document={"issuer": "https://idp.local", "jwks_uri": f"{uri}/jwks"},
            jwk=KeySet([]),
            remaining_lifetime=120,
        )


def test_check_config_prints_initial_tenant_uris(monkeypatch, capsys) -> None:
    """check-config resolves initial tenants and their URIs for each provider."""
    settings = Settings(
        openid_connect=OpenIDConnectSettings(
            providers={
                "static": ProviderConfig(
                    discovery_document_uri="https://static.local/.well-known",
                    multi_tenant=MultiTenantSettings(tenants=["a", "b"]),
                ),
                "dyn": ProviderConfig(
                    discovery_document_uri="https://idp.local/:tenant/.well-known",
                    multi_tenant=MultiTenantSettings(dynamic=True),
                ),
            }
        )
    )
    monkeypatch.setattr(cli_module, "get_settings", lambda: settings)

    exit_code = cli_module.main(["check-config"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["valid"] is True
    assert payload["providers"]["static"]["tenants"] == {
        "a": "https://static.local/.well-known",
        "b": "https://static.local/.well-known",
    }
    assert payload["providers"]["dyn"] == {"dynamic": True, "tenants": {}}


def test_fetch_prints_summary(monkeypatch, capsys) -> None:
    """fetch prints issuer, jwks_uri, key ids and remaining lifetime."""
    monkeypatch.setattr(cli_module, "HTTPDocumentFetcher", _FetcherStub)
    monkeypatch.setattr(_FetcherStub, "fail", False)

    exit_code = cli_module.main(["fetch", "https://idp.local/.well-known", "--timeout-seconds", "1"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload == {
        "uri": "https://idp.local/.well-known",
        "issuer": "https://idp.local",
        "jwks_uri": "https://idp.local/.well-known/jwks",
        "kids": [],
        "remaining_lifetime": 120,
    }


def test_fetch_reports_failure_with_nonzero_exit(monkeypatch, capsys) -> None:
    """Fetch failures are printed and exit with status 1."""
    monkeypatch.setattr(cli_module, "HTTPDocumentFetcher", _FetcherStub)
    monkeypatch.setattr(_FetcherStub, "fail", True)

    exit_code = cli_module.main(["fetch", "https://idp.local/.well-known", "--timeout-seconds", "1"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert payload["status_code"] == 503
