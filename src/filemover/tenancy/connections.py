"""
Tenant to backing-store routing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from filemover.core.cache import SingleFlightCache
from filemover.exceptions import ConfigurationMissing, ResolutionError
from filemover.tenancy.directory import TenantDirectory
from filemover.tenancy.models import DatabaseMode, TenantConfig
from filemover.utils.logging import get_logger

logger = get_logger("filemover.tenancy.connections")


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Where a tenant's ledger lives."""

    tenant_id: str
    dsn: str
    schema: str
    database_mode: DatabaseMode
    source: str  # "override" or "template"


class ConnectionRouter:
    """
    Maps a tenant to a ConnectionDescriptor.

    An override keyed by tenant id wins, then one keyed by the tenant's
    routing key; otherwise the template is filled with ``{tenant_id}``,
    ``{routing_key}`` and ``{schema}``. Results are cached for the process
    lifetime and computed at most once per tenant.

    Examples:
        >>> router = ConnectionRouter(
        ...     template="data/ledger/{routing_key}.duckdb",
        ...     overrides={"firm-abc": "data/ledger/firm-abc-dedicated.duckdb"},
        ...     directory=directory,
        ... )
        >>> (await router.resolve("firm-xyz")).dsn
        'data/ledger/shared-db.duckdb'
    """

    def __init__(
        self,
        template: str | None,
        overrides: Mapping[str, str] | None = None,
        directory: TenantDirectory | None = None,
    ):
        self.template = template
        self.overrides = dict(overrides or {})
        self.directory = directory
        self._cache: SingleFlightCache[str, ConnectionDescriptor] = SingleFlightCache()

    async def resolve(self, tenant_id: str) -> ConnectionDescriptor:
        """
        Raises:
            ConfigurationMissing: Neither an override nor a template applies
            ResolutionError: The tenant is not in the directory
        """
        return await self._cache.get_or_compute(tenant_id, lambda: self._build(tenant_id))

    def is_cached(self, tenant_id: str) -> bool:
        return tenant_id in self._cache

    async def _build(self, tenant_id: str) -> ConnectionDescriptor:
        tenant = await self._tenant(tenant_id)

        for key in (tenant.tenant_id, tenant.routing_key):
            dsn = self.overrides.get(key)
            if dsn:
                logger.debug(f"Routing tenant '{tenant_id}' via override '{key}'")
                return self._descriptor(tenant, dsn, "override")

        if not self.template:
            raise ConfigurationMissing(tenant_id)

        try:
            dsn = self.template.format(
                tenant_id=tenant.tenant_id,
                routing_key=tenant.routing_key,
                schema=tenant.schema,
            )
        except (KeyError, IndexError) as e:
            raise ConfigurationMissing(
                tenant_id, f"Routing template '{self.template}' has an unknown placeholder: {e}"
            ) from e
        logger.debug(f"Routing tenant '{tenant_id}' via template -> {dsn}")
        return self._descriptor(tenant, dsn, "template")

    async def _tenant(self, tenant_id: str) -> TenantConfig:
        if self.directory is None:
            # No directory: route purely on the tenant id
            return TenantConfig(tenant_id=tenant_id, routing_key=tenant_id)
        tenant = await self.directory.get_tenant(tenant_id)
        if tenant is None:
            raise ResolutionError(f"Unknown tenant '{tenant_id}'", details={"tenant_id": tenant_id})
        return tenant

    @staticmethod
    def _descriptor(tenant: TenantConfig, dsn: str, source: str) -> ConnectionDescriptor:
        return ConnectionDescriptor(
            tenant_id=tenant.tenant_id,
            dsn=dsn,
            schema=tenant.schema,
            database_mode=tenant.database_mode,
            source=source,
        )
