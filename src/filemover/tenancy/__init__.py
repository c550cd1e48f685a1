"""
Tenant identity, authorization and backing-store routing.
"""

from filemover.tenancy.connections import ConnectionDescriptor, ConnectionRouter
from filemover.tenancy.directory import TenantDirectory
from filemover.tenancy.models import DatabaseMode, RequestContext, ResolvedTenant, TenantConfig
from filemover.tenancy.resolver import TenantResolver

__all__ = [
    "ConnectionDescriptor",
    "ConnectionRouter",
    "DatabaseMode",
    "RequestContext",
    "ResolvedTenant",
    "TenantConfig",
    "TenantDirectory",
    "TenantResolver",
]
