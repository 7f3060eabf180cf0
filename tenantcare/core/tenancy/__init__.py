# ============================================================================
# SCOPE: MULTI-TENANT
# Description: Multi-tenancy core. Routes every request to the isolated
#              database of exactly one clinic.
# Tenant-Aware: Yes - this module IS the tenant-awareness implementation.
# ============================================================================
"""
Tenancy module for multi-clinic support.

- ClinicRegistry: clinic records, join codes, super-admin credentials
- TenantConnectionCache: one live connection per clinic store
- ModelFactory: binds the shared clinic schema to a connection
- TenantStoreService: locator -> (connection, entities) facade
- TenantResolver: bearer token -> TenantContext
"""

from .connection_cache import ConnectionState, TenantConnection, TenantConnectionCache
from .context import CallerIdentity, SuperAdminIdentity, TenantContext, TenantUserIdentity
from .model_factory import BoundEntitySet, ModelFactory
from .provisioner import TenantStoreProvisioner, validate_locator
from .registry import ClinicRegistry, build_store_locator, generate_join_code, slugify
from .resolver import TenantResolver, extract_bearer_token
from .store_service import TenantStore, TenantStoreService

__all__ = [
    # Registry
    "ClinicRegistry",
    "build_store_locator",
    "generate_join_code",
    "slugify",
    # Connections
    "ConnectionState",
    "TenantConnection",
    "TenantConnectionCache",
    "TenantStoreProvisioner",
    "validate_locator",
    # Schema binding
    "BoundEntitySet",
    "ModelFactory",
    # Store facade
    "TenantStore",
    "TenantStoreService",
    # Context
    "CallerIdentity",
    "SuperAdminIdentity",
    "TenantContext",
    "TenantUserIdentity",
    # Resolver
    "TenantResolver",
    "extract_bearer_token",
]
