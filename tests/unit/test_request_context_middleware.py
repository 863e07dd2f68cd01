"""Unit tests for request correlation and logging middleware."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.middleware import request_context as request_context_module
from app.middleware.request_context import CORRELATION_ID_HEADER, RequestContextMiddleware


class _CaptureLogger:
    """Capture structlog-like logger calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def info(self, event: str, **kwargs: Any) -> None:
        """Capture info-level calls."""
        self.calls.append(("info", event, kwargs))

    def warning(self, event: str, **kwargs: Any) -> None:
        """Capture warning-level calls."""
        self.calls.append(("warning", event, kwargs))

    def exception(self, event: str, **kwargs: Any) -> None:
        """Capture exception-level calls."""
        self.calls.append(("exception", event, kwargs))


def _build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)

    @app.get("/providers/{provider}/jwks")
    async def jwks(provider: str) -> dict[str, str]:
        return {"provider": provider}

    return app


@pytest.mark.asyncio
async def test_request_log_carries_provider_tenant_and_correlation_id(monkeypatch) -> None:
    """Each request logs once with provider context and echoes the correlation ID."""
    capture = _CaptureLogger()
    monkeypatch.setattr(request_context_module, "logger", capture)

    async with AsyncClient(
        transport=ASGITransport(app=_build_app()),
        base_url="http://testserver",
    ) as client:
        response = await client.get(
            "/providers/acme-idp/jwks",
            params={"tenant": "acme"},
            headers={CORRELATION_ID_HEADER: "corr-1"},
        )

    assert response.status_code == 200
    assert response.headers[CORRELATION_ID_HEADER] == "corr-1"
    assert len(capture.calls) == 1
    level, event, payload = capture.calls[0]
    assert level == "info"
    assert event == "request_completed"
    assert payload["provider"] == "acme-idp"
    assert payload["tenant"] == "acme"
    assert payload["correlation_id"] == "corr-1"


@pytest.mark.asyncio
async def test_error_responses_log_at_warning_and_generate_correlation_id(monkeypatch) -> None:
    """Unmatched routes log at warning level and still receive a correlation ID."""
    capture = _CaptureLogger()
    monkeypatch.setattr(request_context_module, "logger", capture)

    async with AsyncClient(
        transport=ASGITransport(app=_build_app()),
        base_url="http://testserver",
    ) as client:
        response = await client.get("/unknown")

    assert response.status_code == 404
    assert response.headers[CORRELATION_ID_HEADER]
    level, _, payload = capture.calls[0]
    assert level == "warning"
    assert payload["provider"] is None
