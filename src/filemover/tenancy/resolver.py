"""
Tenant resolution and client-code authorization.

Candidates are tried in priority order:

1. ``X-Tenant-ID`` header
2. ``X-FirmCode`` header
3. ``tenant_id`` / ``firm_code`` route parameter
4. Subdomain (first host label, not ``www``, not an IP address)
5. Development fallback tenant, when one is configured
"""

from __future__ import annotations

import ipaddress

from filemover.core.cache import SingleFlightCache
from filemover.exceptions import AuthorizationError, ResolutionError
from filemover.tenancy.directory import TenantDirectory
from filemover.tenancy.models import RequestContext, ResolvedTenant, TenantConfig
from filemover.utils.logging import get_logger

logger = get_logger("filemover.tenancy.resolver")

TENANT_HEADERS = ("X-Tenant-ID", "X-FirmCode")
CLIENT_CODE_HEADER = "X-ClientCode"
ROUTE_PARAMS = ("tenant_id", "firm_code")
DEFAULT_TENANT_TTL = 600.0


def subdomain_of(host: str | None) -> str | None:
    """Return the first label of ``host`` if it can name a tenant."""
    if not host:
        return None
    host = host.strip().lower()
    if host.startswith("["):
        # Bracketed IPv6 literal
        return None
    host = host.rsplit(":", 1)[0] if host.count(":") == 1 else host
    try:
        ipaddress.ip_address(host)
        return None
    except ValueError:
        pass
    if "." not in host:
        return None
    label = host.split(".", 1)[0]
    if not label or label == "www":
        return None
    return label


class TenantResolver:
    """
    Derives the tenant for a request or scan and authorizes its client code.

    Tenant configs are looked up through the directory behind a TTL cache
    keyed by tenant id; entries are only invalidated by expiry.
    """

    def __init__(
        self,
        directory: TenantDirectory,
        ttl: float = DEFAULT_TENANT_TTL,
        fallback_tenant: str | None = None,
    ):
        self.directory = directory
        self.fallback_tenant = fallback_tenant
        self._cache: SingleFlightCache[str, TenantConfig] = SingleFlightCache(ttl=ttl)

    def identify(self, context: RequestContext) -> tuple[str, str]:
        """
        Pick the tenant identifier for ``context``.

        Returns:
            (tenant_id, source) where source names the winning candidate

        Raises:
            ResolutionError: If no candidate applies
        """
        for header in TENANT_HEADERS:
            value = context.header(header)
            if value:
                return value, f"header:{header}"

        for param in ROUTE_PARAMS:
            value = (context.route_params.get(param) or "").strip()
            if value:
                return value, f"route:{param}"

        subdomain = subdomain_of(context.host)
        if subdomain:
            return subdomain, "subdomain"

        if self.fallback_tenant:
            logger.warning(f"Using development fallback tenant '{self.fallback_tenant}'")
            return self.fallback_tenant, "fallback"

        raise ResolutionError("Unable to resolve tenant from request context")

    async def get_tenant(self, tenant_id: str) -> TenantConfig:
        """Cached directory lookup; an unknown tenant raises ResolutionError."""

        async def load() -> TenantConfig:
            tenant = await self.directory.get_tenant(tenant_id)
            if tenant is None:
                raise ResolutionError(f"Unknown tenant '{tenant_id}'", details={"tenant_id": tenant_id})
            return tenant

        return await self._cache.get_or_compute(tenant_id, load)

    async def resolve(self, context: RequestContext) -> ResolvedTenant:
        """
        Resolve and authorize the tenant for ``context``.

        Raises:
            ResolutionError: No tenant identifiable, or tenant unknown
            AuthorizationError: Client code not permitted for the tenant
        """
        tenant_id, source = self.identify(context)
        tenant = await self.get_tenant(tenant_id)

        client_code = context.header(CLIENT_CODE_HEADER) or tenant.tenant_id
        if not tenant.permits(client_code):
            logger.warning(f"Rejected client code '{client_code}' for tenant '{tenant.tenant_id}'")
            raise AuthorizationError(tenant.tenant_id, client_code)

        logger.debug(f"Resolved tenant '{tenant.tenant_id}' via {source} (client code '{client_code}')")
        return ResolvedTenant(tenant=tenant, client_code=client_code, source=source)
