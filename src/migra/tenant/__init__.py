"""Multi-tenant execution: tenant sources and the tenant executor."""

from migra.tenant.executor import TenantExecutor, TenantResult, TenantSummary
from migra.tenant.sources import (
    CommandTenantSource,
    EnvTenantSource,
    FileTenantSource,
    FilteredTenantSource,
    TenantSource,
    build_tenant_source,
    parse_tenant_list,
)

__all__ = [
    "TenantExecutor",
    "TenantResult",
    "TenantSummary",
    "TenantSource",
    "EnvTenantSource",
    "FileTenantSource",
    "CommandTenantSource",
    "FilteredTenantSource",
    "build_tenant_source",
    "parse_tenant_list",
]
