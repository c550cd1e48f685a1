"""
Tenant records and the request context the resolver reads from.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from filemover.core.types import as_bool


class DatabaseMode(StrEnum):
    """How a tenant's data is isolated in the backing store."""

    DEDICATED = "dedicated"
    SHARED = "shared"


@dataclass(frozen=True)
class TenantConfig:
    """
    Routing and authorization attributes for one tenant.

    Immutable once loaded; the resolver caches it with a TTL.
    """

    tenant_id: str
    database_mode: DatabaseMode = DatabaseMode.DEDICATED
    routing_key: str = ""
    schema: str = "main"
    allowed_client_codes: tuple[str, ...] = ()
    active: bool = True

    @classmethod
    def from_dict(cls, tenant_id: str, data: Mapping[str, Any] | None) -> TenantConfig:
        """
        Build from a ``tenants.<id>`` config mapping or a gateway payload.

        ``routing_key`` defaults to the tenant id; ``database_mode`` accepts
        either case.
        """
        data = data or {}
        mode = data.get("database_mode", data.get("databaseMode", DatabaseMode.DEDICATED))
        codes = data.get("allowed_client_codes", data.get("allowedClientCodes")) or ()
        if isinstance(codes, str):
            codes = [codes]
        return cls(
            tenant_id=tenant_id,
            database_mode=DatabaseMode(str(mode).lower()),
            routing_key=str(data.get("routing_key") or data.get("routingKey") or tenant_id),
            schema=str(data.get("schema") or "main"),
            allowed_client_codes=tuple(str(code) for code in codes),
            active=as_bool(data.get("active")),
        )

    def permits(self, client_code: str) -> bool:
        if self.database_mode is DatabaseMode.DEDICATED:
            return client_code == self.tenant_id
        return client_code in self.allowed_client_codes


@dataclass(frozen=True)
class RequestContext:
    """
    Transport-neutral view of what the resolver may inspect.

    Header lookups are case-insensitive.
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    route_params: Mapping[str, str] = field(default_factory=dict)
    host: str | None = None

    @classmethod
    def for_tenant(cls, tenant_id: str, client_code: str | None = None) -> RequestContext:
        """Context used by background scans, which know their tenant up front."""
        headers = {"X-Tenant-ID": tenant_id}
        if client_code:
            headers["X-ClientCode"] = client_code
        return cls(headers=headers)

    def header(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                value = (value or "").strip()
                return value or None
        return None


@dataclass(frozen=True)
class ResolvedTenant:
    """Outcome of a successful resolution."""

    tenant: TenantConfig
    client_code: str
    source: str

    @property
    def tenant_id(self) -> str:
        return self.tenant.tenant_id
