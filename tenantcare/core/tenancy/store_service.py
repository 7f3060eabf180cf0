# ============================================================================
# SCOPE: MULTI-TENANT
# Description: Facade over the connection cache and the model factory.
# Tenant-Aware: Yes - locator in, connection + bound entities out.
# ============================================================================
"""
TenantStoreService - the single service turning a store locator into a
usable tenant store (connection + bound entity set).

One instance is created at startup and injected wherever tenant data is
needed (resolver, onboarding). Tests inject fakes instead of touching
module globals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tenantcare.config.settings import Settings

from .connection_cache import TenantConnection, TenantConnectionCache
from .model_factory import BoundEntitySet, ModelFactory
from .provisioner import TenantStoreProvisioner, validate_locator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantStore:
    """Resolved tenant store: connection plus the entities bound to it."""

    locator: str
    connection: TenantConnection
    entities: BoundEntitySet


class TenantStoreService:
    """
    Owns the process-wide connection cache and model factory.

    Lifecycle: created at application startup, `close()` at shutdown.
    Entries heal themselves in between, so no explicit teardown is needed
    while the process runs.
    """

    def __init__(
        self,
        connection_cache: TenantConnectionCache,
        model_factory: ModelFactory,
        provisioner: TenantStoreProvisioner | None = None,
    ) -> None:
        self.connection_cache = connection_cache
        self.model_factory = model_factory
        self.provisioner = provisioner

    @classmethod
    def from_settings(cls, settings: Settings) -> TenantStoreService:
        return cls(
            connection_cache=TenantConnectionCache(settings),
            model_factory=ModelFactory(),
            provisioner=TenantStoreProvisioner(settings.tenant_database_url),
        )

    async def resolve(self, locator: str) -> TenantStore:
        """
        Return the store of an existing tenant.

        Raises:
            InvalidInputError: Locator is malformed.
            TenantConnectionError: Database unreachable.
            SchemaBindingError: Schema could not be bound.
        """
        validate_locator(locator)
        connection = await self.connection_cache.get_connection(locator)
        entities = await self.model_factory.get_entity_set(connection, locator)
        return TenantStore(locator=locator, connection=connection, entities=entities)

    async def provision(self, locator: str) -> TenantStore:
        """Create the physical database of a new tenant, then resolve it."""
        if self.provisioner is not None:
            await self.provisioner.ensure_store(locator)
        store = await self.resolve(locator)
        logger.info(f"Tenant store provisioned: {locator}")
        return store

    async def discard(self, locator: str) -> None:
        """Forget a tenant store: dispose its connection and drop its bound entities."""
        await self.connection_cache.invalidate(locator)
        self.model_factory.evict(locator)

    async def close(self) -> None:
        await self.connection_cache.close_all()
        self.model_factory.clear()
        logger.info("Tenant store service closed")
