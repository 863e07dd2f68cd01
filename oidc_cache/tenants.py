"""Initial tenant resolution."""

from __future__ import annotations

from oidc_cache.types import MultiTenantSettings

DEFAULT_TENANT = "default"


def resolve_initial_tenants(settings: MultiTenantSettings) -> list[str]:
    """Return the tenants provisioned at startup for one provider.

    A non-empty static list wins. Dynamic providers start empty and admit
    tenants on first key lookup. Everything else uses the single default tenant.
    """
    if settings.tenants:
        return list(settings.tenants)
    if settings.dynamic:
        return []
    return [DEFAULT_TENANT]
