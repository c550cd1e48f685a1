"""
Config-backed tenant directory.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from filemover.tenancy.models import TenantConfig
from filemover.utils.logging import get_logger

logger = get_logger("filemover.tenancy.directory")


class TenantDirectory:
    """
    Registry mapping tenant id to TenantConfig.

    Built from the ``tenants`` config section. Lookups are async so a
    directory backed by a remote store can stand in without changing callers.
    """

    def __init__(self, tenants: Mapping[str, TenantConfig] | None = None):
        self._tenants: dict[str, TenantConfig] = dict(tenants or {})

    @classmethod
    def from_config(cls, tenants_config: Mapping[str, Any] | None) -> TenantDirectory:
        tenants = {}
        for tenant_id, data in (tenants_config or {}).items():
            tenants[str(tenant_id)] = TenantConfig.from_dict(str(tenant_id), data)
        logger.debug(f"Loaded {len(tenants)} tenant(s) into directory")
        return cls(tenants)

    async def get_tenant(self, tenant_id: str) -> TenantConfig | None:
        return self._tenants.get(tenant_id)

    async def list_tenant_ids(self, active_only: bool = True) -> list[str]:
        return sorted(tid for tid, tenant in self._tenants.items() if tenant.active or not active_only)

    def __contains__(self, tenant_id: object) -> bool:
        return tenant_id in self._tenants

    def __len__(self) -> int:
        return len(self._tenants)
