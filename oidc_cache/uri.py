"""Per-tenant discovery document URI construction."""

from __future__ import annotations

from collections.abc import Callable

from oidc_cache.exceptions import TenantPlaceholderError
from oidc_cache.types import ProviderConfig

UriBuilder = Callable[[str], str]


def split_template(uri: str, placeholder: str) -> tuple[str, str]:
    """Split a template at the first placeholder occurrence."""
    prefix, found, suffix = uri.partition(placeholder)
    if not found:
        raise TenantPlaceholderError(uri, placeholder)
    return prefix, suffix


def build_uri_builder(config: ProviderConfig) -> UriBuilder:
    """Return a function mapping tenant identifiers to discovery document URIs."""
    uri = config.discovery_document_uri
    settings = config.multi_tenant
    if not settings.dynamic:
        return lambda _tenant: uri

    prefix, suffix = split_template(uri, settings.placeholder)
    if settings.substitute_all:
        return lambda tenant: uri.replace(settings.placeholder, tenant)
    return lambda tenant: f"{prefix}{tenant}{suffix}"
