"""Batch refresh of tenant documents and next-refresh timer arming."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

import structlog

from oidc_cache.exceptions import DocumentFetchError
from oidc_cache.fetcher import DocumentFetcher
from oidc_cache.types import ProviderConfig, TenantDocuments, TenantEntry
from oidc_cache.uri import build_uri_builder

DEFAULT_REFRESH_INTERVAL_MS = 60 * 60 * 1000

logger = structlog.get_logger(__name__)


def time_until_next_refresh(
    remaining_lifetime: int | None,
    default_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS,
) -> int:
    """Convert a provider-advertised lifetime in seconds into a refresh delay in ms."""
    if remaining_lifetime is None:
        return default_interval_ms
    if remaining_lifetime > 0:
        return remaining_lifetime * 1000
    return 0


@dataclass(frozen=True)
class RefreshOutcome:
    """Merged tenant documents and the delay until the next refresh."""

    documents: dict[str, TenantEntry]
    delay_ms: int


class RefreshScheduler:
    """Refresh tenant batches through a fetcher and arm follow-up timers."""

    def __init__(
        self,
        fetcher: DocumentFetcher,
        default_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS,
    ) -> None:
        self._fetcher = fetcher
        self._default_interval_ms = default_interval_ms

    @property
    def default_interval_ms(self) -> int:
        """Delay used when a batch yields no shorter lifetime."""
        return self._default_interval_ms

    async def refresh_batch(
        self,
        provider: str,
        config: ProviderConfig,
        tenants: Sequence[str],
        documents: Mapping[str, TenantEntry],
    ) -> RefreshOutcome:
        """Fetch every tenant in ``tenants`` sequentially and fold the refresh delay.

        Failed fetches are stored in place of documents and never lower the delay.
        Entries for tenants outside the batch are carried over untouched.
        """
        uri_builder = build_uri_builder(config)
        merged = dict(documents)
        delay_ms = self._default_interval_ms

        for tenant in tenants:
            uri = uri_builder(tenant)
            try:
                fetched = await self._fetch(provider, tenant, uri)
            except DocumentFetchError as exc:
                merged[tenant] = exc
                logger.warning(
                    "tenant_documents_fetch_failed",
                    provider=provider,
                    tenant=tenant,
                    uri=uri,
                    status_code=exc.status_code,
                    error=exc.detail,
                )
                continue

            merged[tenant] = fetched
            delay_ms = min(
                delay_ms,
                time_until_next_refresh(fetched.remaining_lifetime, self._default_interval_ms),
            )
            logger.info(
                "tenant_documents_refreshed",
                provider=provider,
                tenant=tenant,
                uri=uri,
                remaining_lifetime=fetched.remaining_lifetime,
            )

        return RefreshOutcome(documents=merged, delay_ms=delay_ms)

    async def _fetch(self, provider: str, tenant: str, uri: str) -> TenantDocuments:
        """Fetch one tenant, turning unexpected fetcher failures into fetch errors."""
        try:
            return await self._fetcher.fetch(uri)
        except DocumentFetchError:
            raise
        except Exception as exc:
            logger.exception(
                "tenant_documents_fetch_crashed", provider=provider, tenant=tenant, uri=uri
            )
            raise DocumentFetchError("Unexpected document fetch failure.", uri) from exc

    def arm(
        self,
        provider: str,
        previous: asyncio.TimerHandle | None,
        delay_ms: int,
        callback: Callable[[str], None],
    ) -> asyncio.TimerHandle:
        """Cancel ``previous`` and arm exactly one delayed ``callback(provider)``."""
        if previous is not None:
            previous.cancel()
        handle = asyncio.get_running_loop().call_later(delay_ms / 1000, callback, provider)
        logger.debug("provider_refresh_scheduled", provider=provider, delay_ms=delay_ms)
        return handle
