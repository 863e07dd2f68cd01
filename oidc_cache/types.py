"""Provider configuration models and cached state types."""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any, Final

from authlib.jose import KeySet
from pydantic import BaseModel, Field, model_validator

from oidc_cache.exceptions import DocumentFetchError

DEFAULT_TENANT_PLACEHOLDER = ":tenant"


class Disabled(enum.Enum):
    """Sentinel type telling the store to skip initialization."""

    DISABLED = "disabled"


DISABLED: Final = Disabled.DISABLED


class MultiTenantSettings(BaseModel):
    """Tenant enumeration and URI templating settings for one provider."""

    dynamic: bool = False
    tenants: list[str] = Field(default_factory=list)
    placeholder: str = Field(default=DEFAULT_TENANT_PLACEHOLDER, min_length=1)
    substitute_all: bool = Field(
        default=False,
        description="Replace every placeholder occurrence instead of only the first.",
    )


class ProviderConfig(BaseModel):
    """Configuration for one OpenID Connect identity provider."""

    discovery_document_uri: str = Field(min_length=1)
    multi_tenant: MultiTenantSettings = Field(default_factory=MultiTenantSettings)

    @model_validator(mode="after")
    def validate_tenant_placeholder(self) -> ProviderConfig:
        """Reject dynamic templates that have no tenant split point."""
        placeholder = self.multi_tenant.placeholder
        if self.multi_tenant.dynamic and placeholder not in self.discovery_document_uri:
            raise ValueError(
                f"discovery_document_uri must contain the tenant placeholder {placeholder!r} "
                "when multi_tenant.dynamic is enabled."
            )
        return self


@dataclass(frozen=True)
class TenantDocuments:
    """Successfully fetched metadata for one tenant."""

    discovery_document: dict[str, Any]
    jwk: KeySet
    remaining_lifetime: int | None = None


TenantEntry = TenantDocuments | DocumentFetchError


@dataclass
class ProviderState:
    """Mutable per-provider cache state, owned by the store actor."""

    config: ProviderConfig
    tenants: list[str] = field(default_factory=list)
    documents: dict[str, TenantEntry] = field(default_factory=dict)
    timer: asyncio.TimerHandle | None = None
    refresh_delay_ms: int | None = None
