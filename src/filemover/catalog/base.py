"""
Read-only configuration store interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from filemover.core.types import TransferConfig
from filemover.tenancy.models import TenantConfig


class ConfigStore(ABC):
    """
    Where tenants and their transfer configs come from.

    The core never writes through this interface; configs are maintained by
    an external admin surface.
    """

    @abstractmethod
    async def get_tenant_config(self, tenant_id: str) -> TenantConfig | None:
        """Tenant routing attributes, or None if the tenant is unknown."""

    @abstractmethod
    async def get_transfer_config(self, tenant_id: str, config_id: int) -> TransferConfig | None:
        """
        One transfer config, enabled or not.

        Returns None when the config does not exist for this tenant.
        """

    @abstractmethod
    async def list_active_configs(self, tenant_id: str) -> list[TransferConfig]:
        """Enabled transfer configs for a tenant."""

    @abstractmethod
    async def list_active_tenants(self) -> list[str]:
        """Ids of tenants whose configs should be scheduled."""

    async def close(self) -> None:
        """Release any held resources."""
