"""Single-owner store keeping provider documents fresh.

One asyncio task owns every ``ProviderState`` and handles queued messages
one at a time: startup, timer fires, forced refreshes and queries. Fetches
run inside the owner's turn, so a slow identity provider delays every other
message queued behind it, including queries for unrelated providers.
"""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import structlog
from authlib.jose import KeySet

from oidc_cache.exceptions import DocumentFetchError
from oidc_cache.fetcher import DocumentFetcher
from oidc_cache.scheduler import DEFAULT_REFRESH_INTERVAL_MS, RefreshScheduler
from oidc_cache.tenants import DEFAULT_TENANT, resolve_initial_tenants
from oidc_cache.types import (
    DISABLED,
    Disabled,
    ProviderConfig,
    ProviderState,
    TenantDocuments,
)

logger = structlog.get_logger(__name__)

_Handler = Callable[..., Awaitable[Any]]
_Message = tuple[_Handler, tuple[Any, ...], "asyncio.Future[Any] | None"]


class ProviderStore:
    """Process-wide owner of cached provider metadata."""

    def __init__(
        self,
        providers: Mapping[str, ProviderConfig | Mapping[str, Any]] | Disabled,
        fetcher: DocumentFetcher,
        default_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS,
    ) -> None:
        """Validate provider configs eagerly so template errors surface before startup."""
        self._configs: dict[str, ProviderConfig] | None = None
        if providers is not DISABLED:
            self._configs = {
                provider: ProviderConfig.model_validate(config)
                for provider, config in providers.items()
            }
        self._scheduler = RefreshScheduler(fetcher, default_interval_ms=default_interval_ms)
        self._state: dict[str, ProviderState] = {}
        self._mailbox: asyncio.Queue[_Message] | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def disabled(self) -> bool:
        """Return True when the store was created with the disabled sentinel."""
        return self._configs is None

    @property
    def running(self) -> bool:
        """Return True while the owner task is processing messages."""
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Queue initial refreshes for every configured provider and start the owner task."""
        if self._configs is None:
            logger.info("provider_store_disabled")
            return
        if self._task is not None:
            return
        self._mailbox = asyncio.Queue()
        self._mailbox.put_nowait((self._handle_init, (self._configs,), None))
        self._task = asyncio.create_task(self._run(), name="oidc-provider-store")

    async def stop(self) -> None:
        """Cancel every provider timer and the owner task.

        Callers still waiting on a reply, including the one being handled when
        the task is cancelled, receive None.
        """
        for state in self._state.values():
            if state.timer is not None:
                state.timer.cancel()
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        mailbox, self._mailbox = self._mailbox, None
        while mailbox is not None and not mailbox.empty():
            _, _, reply = mailbox.get_nowait()
            if reply is not None and not reply.done():
                reply.set_result(None)

    async def discovery_document(
        self, provider: str, tenant: str = DEFAULT_TENANT
    ) -> dict[str, Any] | DocumentFetchError | None:
        """Return the cached discovery document, or the stored fetch error verbatim."""
        return await self._call(self._handle_discovery_document, provider, tenant)

    async def jwk(self, provider: str, tenant: str = DEFAULT_TENANT) -> KeySet | None:
        """Return the cached key set, admitting unseen tenants of dynamic providers.

        Fetch errors are not exposed here; they collapse to None.
        """
        return await self._call(self._handle_jwk, provider, tenant)

    async def config(self, provider: str) -> ProviderConfig | None:
        """Return the stored provider configuration."""
        return await self._call(self._handle_config, provider)

    async def tenants(self, provider: str) -> list[str] | None:
        """Return the tenants currently provisioned for a provider."""
        return await self._call(self._handle_tenants, provider)

    async def inspect(self, provider: str) -> ProviderState | None:
        """Return a copy of a provider's state."""
        return await self._call(self._handle_inspect, provider)

    async def refresh(self, provider: str) -> None:
        """Refresh a provider's full tenant set now, exactly as a timer fire would."""
        await self._call(self._handle_refresh, provider)

    def _timer_fired(self, provider: str) -> None:
        """Queue the refresh for a provider whose timer elapsed."""
        if self._mailbox is not None:
            self._mailbox.put_nowait((self._handle_refresh, (provider,), None))

    async def _call(self, handler: _Handler, *args: Any) -> Any:
        """Queue a message for the owner task and wait for its reply."""
        if self._mailbox is None:
            return None
        reply = asyncio.get_running_loop().create_future()
        await self._mailbox.put((handler, args, reply))
        return await reply

    async def _run(self) -> None:
        """Process queued messages to completion, one at a time."""
        assert self._mailbox is not None
        while True:
            handler, args, reply = await self._mailbox.get()
            try:
                result = await handler(*args)
            except asyncio.CancelledError:
                if reply is not None and not reply.done():
                    reply.set_result(None)
                raise
            except Exception as exc:
                logger.exception("provider_store_message_failed", handler=handler.__name__)
                if reply is not None and not reply.done():
                    reply.set_exception(exc)
                continue
            if reply is not None and not reply.done():
                reply.set_result(result)

    async def _handle_init(self, configs: Mapping[str, ProviderConfig]) -> None:
        for provider, config in configs.items():
            tenants = resolve_initial_tenants(config.multi_tenant)
            state = ProviderState(config=config, tenants=tenants)
            self._state[provider] = state
            try:
                await self._refresh_and_rearm(provider, state, list(tenants))
            except Exception:
                logger.exception("provider_initialization_failed", provider=provider)
                continue
            logger.info(
                "provider_initialized",
                provider=provider,
                tenants=tenants,
                refresh_delay_ms=state.refresh_delay_ms,
            )

    async def _handle_refresh(self, provider: str) -> None:
        state = self._state.get(provider)
        if state is None:
            logger.info("provider_refresh_ignored", provider=provider)
            return
        await self._refresh_and_rearm(provider, state, list(state.tenants))

    async def _handle_discovery_document(
        self, provider: str, tenant: str
    ) -> dict[str, Any] | DocumentFetchError | None:
        state = self._state.get(provider)
        if state is None:
            return None
        entry = state.documents.get(tenant)
        if isinstance(entry, TenantDocuments):
            return entry.discovery_document
        return entry

    async def _handle_jwk(self, provider: str, tenant: str) -> KeySet | None:
        state = self._state.get(provider)
        if state is None:
            return None
        if tenant not in state.documents:
            if not state.config.multi_tenant.dynamic or tenant in state.tenants:
                return None
            await self._admit_tenant(provider, state, tenant)
        entry = state.documents.get(tenant)
        if isinstance(entry, TenantDocuments):
            return entry.jwk
        return None

    async def _handle_config(self, provider: str) -> ProviderConfig | None:
        state = self._state.get(provider)
        return state.config if state is not None else None

    async def _handle_tenants(self, provider: str) -> list[str] | None:
        state = self._state.get(provider)
        return list(state.tenants) if state is not None else None

    async def _handle_inspect(self, provider: str) -> ProviderState | None:
        state = self._state.get(provider)
        if state is None:
            return None
        return dataclasses.replace(
            state, tenants=list(state.tenants), documents=dict(state.documents)
        )

    async def _admit_tenant(self, provider: str, state: ProviderState, tenant: str) -> None:
        """Fetch one new tenant; its delay governs the next full refresh."""
        state.tenants.insert(0, tenant)
        await self._refresh_and_rearm(provider, state, [tenant])
        logger.info(
            "tenant_admitted",
            provider=provider,
            tenant=tenant,
            fetched=isinstance(state.documents.get(tenant), TenantDocuments),
        )

    async def _refresh_and_rearm(
        self, provider: str, state: ProviderState, tenants: list[str]
    ) -> None:
        """Refresh ``tenants`` and replace the provider timer, even when the batch fails."""
        try:
            outcome = await self._scheduler.refresh_batch(
                provider, state.config, tenants, state.documents
            )
        except Exception:
            self._rearm(provider, state, self._scheduler.default_interval_ms)
            raise
        state.documents = outcome.documents
        self._rearm(provider, state, outcome.delay_ms)

    def _rearm(self, provider: str, state: ProviderState, delay_ms: int) -> None:
        state.timer = self._scheduler.arm(provider, state.timer, delay_ms, self._timer_fired)
        state.refresh_delay_ms = delay_ms
