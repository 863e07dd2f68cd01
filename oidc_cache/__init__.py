"""Public cache exports."""

from oidc_cache.exceptions import (
    ConfigurationError,
    DocumentFetchError,
    OIDCCacheError,
    TenantPlaceholderError,
)
from oidc_cache.fetcher import DocumentFetcher, HTTPDocumentFetcher
from oidc_cache.scheduler import DEFAULT_REFRESH_INTERVAL_MS, RefreshScheduler
from oidc_cache.store import ProviderStore
from oidc_cache.tenants import DEFAULT_TENANT
from oidc_cache.types import (
    DISABLED,
    MultiTenantSettings,
    ProviderConfig,
    ProviderState,
    TenantDocuments,
)

__all__ = [
    "DEFAULT_REFRESH_INTERVAL_MS",
    "DEFAULT_TENANT",
    "DISABLED",
    "ConfigurationError",
    "DocumentFetchError",
    "DocumentFetcher",
    "HTTPDocumentFetcher",
    "MultiTenantSettings",
    "OIDCCacheError",
    "ProviderConfig",
    "ProviderState",
    "ProviderStore",
    "RefreshScheduler",
    "TenantDocuments",
    "TenantPlaceholderError",
]
