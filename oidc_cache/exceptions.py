"""Exception hierarchy for the provider metadata cache."""

from __future__ import annotations


class OIDCCacheError(Exception):
    """Base class for all cache-specific exceptions."""


class ConfigurationError(OIDCCacheError):
    """Raised when a provider configuration cannot be used."""


class TenantPlaceholderError(ConfigurationError):
    """Raised when a dynamic multi-tenant URI template lacks its placeholder."""

    def __init__(self, uri: str, placeholder: str) -> None:
        """Initialize with the offending template and placeholder."""
        super().__init__(
            f"Discovery document URI {uri!r} does not contain tenant placeholder {placeholder!r}."
        )
        self.uri = uri
        self.placeholder = placeholder


class DocumentFetchError(OIDCCacheError):
    """Raised when discovery document or JWKS retrieval fails for one URI."""

    def __init__(self, detail: str, uri: str, status_code: int | None = None) -> None:
        """Initialize with the failing URI and optional HTTP status code context."""
        super().__init__(detail)
        self.detail = detail
        self.uri = uri
        self.status_code = status_code
