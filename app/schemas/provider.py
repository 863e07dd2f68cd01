"""Provider metadata response schemas."""

from __future__ import annotations

from pydantic import BaseModel


class TenantListResponse(BaseModel):
    """Tenants currently provisioned for a provider, most recently admitted first."""

    provider: str
    tenants: list[str]


class RefreshResponse(BaseModel):
    """Outcome of a forced full-tenant-set refresh."""

    provider: str
    tenants: list[str]
    refresh_delay_ms: int | None
    failed_tenants: list[str]
