"""Request correlation and structured request logging middleware."""

from __future__ import annotations

from time import perf_counter
from uuid import uuid4

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

CORRELATION_ID_HEADER = "X-Correlation-ID"
_CONTEXT_KEY = "correlation_id"

logger = structlog.get_logger(__name__)


def _provider_from_path(path: str) -> str | None:
    """Return the provider segment of /providers/{provider}/... paths."""
    segments = [segment for segment in path.split("/") if segment]
    if len(segments) >= 2 and segments[0] == "providers":
        return segments[1]
    return None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a correlation ID to structlog context and log one event per request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        """Run the request inside its correlation context and log completion."""
        correlation_id = request.headers.get(CORRELATION_ID_HEADER, "").strip() or str(uuid4())
        request.state.correlation_id = correlation_id
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
        start = perf_counter()
        log_fields = {
            "method": request.method,
            "path": request.url.path,
            "provider": _provider_from_path(request.url.path),
            "tenant": request.query_params.get("tenant"),
        }

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_completed",
                status_code=500,
                duration_ms=round((perf_counter() - start) * 1000, 2),
                **log_fields,
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars(_CONTEXT_KEY)

        event_logger = logger.warning if response.status_code >= 400 else logger.info
        event_logger(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((perf_counter() - start) * 1000, 2),
            correlation_id=correlation_id,
            **log_fields,
        )
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
