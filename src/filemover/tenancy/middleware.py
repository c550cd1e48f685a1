"""
aiohttp middleware applying tenant resolution to incoming requests.
"""

from collections.abc import Iterable
from typing import Any

from aiohttp import web

from filemover.exceptions import AuthorizationError, ConfigurationMissing, ResolutionError
from filemover.tenancy.models import RequestContext, ResolvedTenant
from filemover.tenancy.resolver import TenantResolver
from filemover.utils.logging import get_logger

logger = get_logger("filemover.tenancy.middleware")

RESOLVER_KEY = web.AppKey("tenant_resolver", TenantResolver)
TENANT_REQUEST_KEY = "tenant"
DEFAULT_WHITELIST = ("/health", "/metrics")


def _error(status: int, code: str, exc: Exception) -> web.Response:
    details = getattr(exc, "details", {}) or {}
    return web.json_response(
        {"error": {"code": code, "message": str(exc), "details": details}},
        status=status,
    )


def request_context(request: web.Request) -> RequestContext:
    """Build a RequestContext from an aiohttp request."""
    return RequestContext(
        headers=dict(request.headers),
        route_params=dict(request.match_info),
        host=request.host,
    )


def get_tenant(request: web.Request) -> ResolvedTenant:
    """Resolved tenant stored on the request by the middleware."""
    return request[TENANT_REQUEST_KEY]


def setup_tenancy(
    app: web.Application,
    resolver: TenantResolver,
    whitelist: Iterable[str] = DEFAULT_WHITELIST,
) -> None:
    """
    Install tenant resolution middleware.

    Whitelisted paths skip resolution. Failures map to:
    ResolutionError -> 400, AuthorizationError -> 403,
    ConfigurationMissing -> 500.

    Args:
        app: aiohttp Application
        resolver: TenantResolver shared by all requests
        whitelist: Paths that never need a tenant
    """
    app[RESOLVER_KEY] = resolver
    skipped = frozenset(whitelist)

    @web.middleware
    async def tenancy_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
        if request.path in skipped:
            return await handler(request)

        try:
            request[TENANT_REQUEST_KEY] = await resolver.resolve(request_context(request))
        except ResolutionError as e:
            logger.warning(f"Tenant resolution failed for {request.method} {request.path}: {e}")
            return _error(400, "TENANT_UNRESOLVED", e)
        except AuthorizationError as e:
            return _error(403, "CLIENT_CODE_FORBIDDEN", e)

        try:
            return await handler(request)
        except ConfigurationMissing as e:
            logger.error(f"Missing routing configuration: {e}")
            return _error(500, "CONFIGURATION_MISSING", e)

    app.middlewares.append(tenancy_middleware)
