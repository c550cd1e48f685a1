"""
Configuration store backed by the ``transfers`` config section.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from filemover.catalog.base import ConfigStore
from filemover.core.types import TransferConfig
from filemover.exceptions import ConfigurationError
from filemover.tenancy.directory import TenantDirectory
from filemover.tenancy.models import TenantConfig
from filemover.utils.logging import get_logger

logger = get_logger("filemover.catalog.static")


class StaticConfigStore(ConfigStore):
    """
    In-process store of transfer configs.

    Configs can be added or removed at runtime with ``upsert``/``remove``;
    the next discovery pass picks the change up.
    """

    def __init__(self, directory: TenantDirectory, configs: Iterable[TransferConfig] = ()):
        self.directory = directory
        self._configs: dict[tuple[str, int], TransferConfig] = {}
        for config in configs:
            self.upsert(config)

    @classmethod
    def from_config(cls, directory: TenantDirectory, transfers: list[dict[str, Any]] | None) -> StaticConfigStore:
        configs = []
        for index, item in enumerate(transfers or []):
            if not isinstance(item, dict):
                raise ConfigurationError(f"transfers[{index}] must be a mapping")
            try:
                config = TransferConfig.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(f"transfers[{index}] is invalid: {e}") from e
            if not config.tenant_id:
                raise ConfigurationError(f"transfers[{index}] has no tenant_id")
            configs.append(config)
        logger.debug(f"Loaded {len(configs)} transfer config(s)")
        return cls(directory, configs)

    def upsert(self, config: TransferConfig) -> None:
        self._configs[(config.tenant_id, config.config_id)] = config

    def remove(self, tenant_id: str, config_id: int) -> None:
        self._configs.pop((tenant_id, config_id), None)

    async def get_tenant_config(self, tenant_id: str) -> TenantConfig | None:
        return await self.directory.get_tenant(tenant_id)

    async def get_transfer_config(self, tenant_id: str, config_id: int) -> TransferConfig | None:
        return self._configs.get((tenant_id, config_id))

    async def list_active_configs(self, tenant_id: str) -> list[TransferConfig]:
        return sorted(
            (c for (tid, _), c in self._configs.items() if tid == tenant_id and c.enabled),
            key=lambda c: c.config_id,
        )

    async def list_active_tenants(self) -> list[str]:
        return await self.directory.list_tenant_ids(active_only=True)
