"""Middleware package exports."""

from app.middleware.request_context import CORRELATION_ID_HEADER, RequestContextMiddleware

__all__ = ["CORRELATION_ID_HEADER", "RequestContextMiddleware"]
