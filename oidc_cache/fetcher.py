"""Discovery document and JWKS retrieval."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

import httpx
from authlib.jose import JoseError, JsonWebKey

from oidc_cache.exceptions import DocumentFetchError
from oidc_cache.types import TenantDocuments

DEFAULT_TIMEOUT = httpx.Timeout(connect=2.0, read=5.0, write=5.0, pool=5.0)


class DocumentFetcher(Protocol):
    """Collaborator fetching one tenant's provider metadata."""

    async def fetch(self, uri: str) -> TenantDocuments:
        """Return fetched documents or raise DocumentFetchError."""
        ...


def _parse_max_age(cache_control: str) -> int | None:
    """Extract the max-age directive from a Cache-Control header value."""
    for directive in cache_control.split(","):
        name, _, value = directive.strip().partition("=")
        if name.strip().lower() != "max-age":
            continue
        try:
            return int(value.strip().strip('"'))
        except ValueError:
            return None
    return None


def remaining_lifetime(headers: Mapping[str, str]) -> int | None:
    """Return seconds left before cached documents go stale, per HTTP caching headers."""
    max_age = _parse_max_age(headers.get("cache-control", ""))
    if max_age is None:
        return None
    try:
        age = int(headers.get("age", "0").strip())
    except ValueError:
        age = 0
    return max_age - age


class HTTPDocumentFetcher:
    """Fetch discovery documents and their JWKS over HTTP."""

    def __init__(
        self,
        timeout: httpx.Timeout | float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create fetcher with sane defaults and optional injected transport."""
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout or DEFAULT_TIMEOUT,
            follow_redirects=True,
        )

    async def fetch(self, uri: str) -> TenantDocuments:
        """Fetch the discovery document at ``uri`` and the key set it references."""
        response = await self._get(uri)
        discovery_document = self._json_object(response, uri)

        jwks_uri = discovery_document.get("jwks_uri")
        if not isinstance(jwks_uri, str) or not jwks_uri:
            raise DocumentFetchError(
                "Discovery document has no jwks_uri.", uri, response.status_code
            )

        jwks_response = await self._get(jwks_uri)
        jwks_payload = self._json_object(jwks_response, jwks_uri)
        try:
            key_set = JsonWebKey.import_key_set(jwks_payload)
        except (JoseError, ValueError, KeyError, TypeError) as exc:
            raise DocumentFetchError(
                "Invalid JWKS payload.", jwks_uri, jwks_response.status_code
            ) from exc

        return TenantDocuments(
            discovery_document=discovery_document,
            jwk=key_set,
            remaining_lifetime=remaining_lifetime(response.headers),
        )

    async def aclose(self) -> None:
        """Close underlying HTTP client if owned by this instance."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HTTPDocumentFetcher:
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        """Exit async context manager and close managed resources."""
        del exc_type, exc, tb
        await self.aclose()

    async def _get(self, uri: str) -> httpx.Response:
        """Execute GET and normalize upstream failures."""
        try:
            response = await self._client.get(uri)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DocumentFetchError("Identity provider unavailable.", uri) from exc

        if response.status_code >= 400:
            raise DocumentFetchError(
                f"Identity provider request failed with status {response.status_code}.",
                uri,
                response.status_code,
            )
        return response

    @staticmethod
    def _json_object(response: httpx.Response, uri: str) -> dict[str, Any]:
        """Return response JSON as object."""
        try:
            payload = response.json()
        except ValueError as exc:
            raise DocumentFetchError(
                "Identity provider returned invalid JSON.", uri, response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise DocumentFetchError(
                "Identity provider returned invalid JSON object.", uri, response.status_code
            )
        return payload
