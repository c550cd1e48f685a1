"""
Configuration store backed by the management API gateway.

Endpoints::

    GET /api/tenants/active
    GET /api/tenants/{tenant_id}/configurations/active
    GET /api/filetransfer/configurations/{config_id}    (X-Tenant-ID)
"""

from __future__ import annotations

from typing import Any

import aiohttp

from filemover.catalog.base import ConfigStore
from filemover.core.types import TransferConfig, as_bool
from filemover.tenancy.directory import TenantDirectory
from filemover.tenancy.models import TenantConfig
from filemover.utils.logging import get_logger

logger = get_logger("filemover.catalog.http")

TENANT_HEADER = "X-Tenant-ID"


class HttpConfigStore(ConfigStore):
    """
    Reads tenants and transfer configs from the gateway.

    HTTP failures propagate as ``aiohttp.ClientError``; discovery keeps a
    tenant's existing schedules when its listing fails.

    Args:
        base_url: Gateway root, e.g. ``http://gateway:8080``
        directory: Source of tenant routing attributes
        timeout: Per-request timeout in seconds
        session: Optional pre-built session (tests)
    """

    def __init__(
        self,
        base_url: str,
        directory: TenantDirectory,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.directory = directory
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self._session

    async def _get_json(self, path: str, tenant_id: str | None = None) -> Any:
        headers = {TENANT_HEADER: tenant_id} if tenant_id else {}
        async with self._get_session().get(f"{self.base_url}{path}", headers=headers) as resp:
            if resp.status == 404:
                return None
            resp.raise_for_status()
            return await resp.json()

    async def get_tenant_config(self, tenant_id: str) -> TenantConfig | None:
        return await self.directory.get_tenant(tenant_id)

    async def get_transfer_config(self, tenant_id: str, config_id: int) -> TransferConfig | None:
        data = await self._get_json(f"/api/filetransfer/configurations/{config_id}", tenant_id)
        if not data:
            return None
        return TransferConfig.from_dict(data, tenant_id=tenant_id)

    async def list_active_configs(self, tenant_id: str) -> list[TransferConfig]:
        items = await self._get_json(f"/api/tenants/{tenant_id}/configurations/active") or []

        configs = []
        for item in items:
            if not as_bool(item.get("isActive", item.get("is_active"))):
                continue
            if item.get("sourceLocation") or item.get("source_location"):
                configs.append(TransferConfig.from_dict(item, tenant_id=tenant_id))
                continue
            # Summary rows carry no locations; fetch the full config
            config = await self.get_transfer_config(tenant_id, int(item["id"]))
            if config is not None and config.enabled:
                configs.append(config)
        return configs

    async def list_active_tenants(self) -> list[str]:
        items = await self._get_json("/api/tenants/active") or []
        return [str(item["id"]) for item in items if as_bool(item.get("isActive", item.get("is_active")))]

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
