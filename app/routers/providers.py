"""Provider metadata query routes."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query

from app.dependencies import get_provider_store
from app.schemas.provider import RefreshResponse, TenantListResponse
from oidc_cache.exceptions import DocumentFetchError
from oidc_cache.store import ProviderStore
from oidc_cache.tenants import DEFAULT_TENANT
from oidc_cache.types import ProviderConfig

router = APIRouter(prefix="/providers", tags=["providers"])

TenantQuery = Annotated[str, Query(min_length=1, max_length=256)]


def _provider_not_found(provider: str) -> HTTPException:
    """Build the unknown-provider error."""
    return HTTPException(
        status_code=404,
        detail={"detail": f"Unknown provider {provider!r}.", "code": "provider_not_found"},
    )


def _tenant_not_found(provider: str, tenant: str) -> HTTPException:
    """Build the missing-tenant error."""
    return HTTPException(
        status_code=404,
        detail={
            "detail": f"No cached documents for tenant {tenant!r} of provider {provider!r}.",
            "code": "tenant_not_found",
        },
    )


async def _require_config(store: ProviderStore, provider: str) -> ProviderConfig:
    """Return provider config or raise 404."""
    config = await store.config(provider)
    if config is None:
        raise _provider_not_found(provider)
    return config


@router.get("/{provider}/config", response_model=ProviderConfig)
async def provider_config(
    provider: str,
    store: Annotated[ProviderStore, Depends(get_provider_store)],
) -> ProviderConfig:
    """Return the stored provider configuration."""
    return await _require_config(store, provider)


@router.get("/{provider}/discovery")
async def discovery_document(
    provider: str,
    store: Annotated[ProviderStore, Depends(get_provider_store)],
    tenant: TenantQuery = DEFAULT_TENANT,
) -> dict[str, Any]:
    """Return the cached discovery document, surfacing a stored fetch failure as 502."""
    await _require_config(store, provider)
    document = await store.discovery_document(provider, tenant)
    if isinstance(document, DocumentFetchError):
        raise HTTPException(
            status_code=502,
            detail={"detail": document.detail, "code": "document_unavailable"},
        )
    if document is None:
        raise _tenant_not_found(provider, tenant)
    return document


@router.get("/{provider}/jwks")
async def jwks(
    provider: str,
    store: Annotated[ProviderStore, Depends(get_provider_store)],
    tenant: TenantQuery = DEFAULT_TENANT,
) -> dict[str, Any]:
    """Return the cached public key set; dynamic providers admit unseen tenants here."""
    await _require_config(store, provider)
    key_set = await store.jwk(provider, tenant)
    if key_set is None:
        raise _tenant_not_found(provider, tenant)
    return key_set.as_dict(is_private=False)


@router.get("/{provider}/tenants", response_model=TenantListResponse)
async def tenants(
    provider: str,
    store: Annotated[ProviderStore, Depends(get_provider_store)],
) -> TenantListResponse:
    """List provisioned tenants."""
    provisioned = await store.tenants(provider)
    if provisioned is None:
        raise _provider_not_found(provider)
    return TenantListResponse(provider=provider, tenants=provisioned)


@router.post("/{provider}/refresh", response_model=RefreshResponse)
async def refresh(
    provider: str,
    store: Annotated[ProviderStore, Depends(get_provider_store)],
) -> RefreshResponse:
    """Refresh every provisioned tenant now and rearm the provider timer."""
    await _require_config(store, provider)
    await store.refresh(provider)
    state = await store.inspect(provider)
    if state is None:
        raise _provider_not_found(provider)
    return RefreshResponse(
        provider=provider,
        tenants=state.tenants,
        refresh_delay_ms=state.refresh_delay_ms,
        failed_tenants=[
            tenant
            for tenant in state.tenants
            if isinstance(state.documents.get(tenant), DocumentFetchError)
        ],
    )
