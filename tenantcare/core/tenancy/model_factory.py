# ============================================================================
# SCOPE: MULTI-TENANT
# Description: Binds the shared clinic schema to a tenant connection.
# Tenant-Aware: Yes - produces the entity accessors handlers work with.
# ============================================================================
"""
ModelFactory - binds the fixed clinic entity schema to tenant connections.

For every tenant the factory ensures the clinic tables exist in that
tenant's database and builds one EntityAccessor per logical entity name.
The resulting BoundEntitySet is cached per store locator, so binding runs
once per tenant connection and repeated lookups return the same accessor
instances.

Usage:
    factory = ModelFactory()
    entities = await factory.get_entity_set(connection, locator)
    user = await entities.User.find_one(email="a@x.com")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator, Mapping

from tenantcare.core.exceptions import SchemaBindingError
from tenantcare.models.db.base import TenantBase
from tenantcare.models.db.clinic import ENTITY_MODELS, SCHEMA_VERSION
from tenantcare.repositories.entity_accessor import EntityAccessor

from .connection_cache import TenantConnection

logger = logging.getLogger(__name__)


class BoundEntitySet(Mapping[str, EntityAccessor]):
    """
    Read-only mapping of entity name -> accessor for one tenant.

    Accessors are reachable both as items (`entities["User"]`) and as
    attributes (`entities.User`).
    """

    def __init__(self, locator: str, connection: TenantConnection, accessors: dict[str, EntityAccessor]) -> None:
        self.locator = locator
        self.connection = connection
        self.schema_version = SCHEMA_VERSION
        self._accessors = dict(accessors)

    def __getitem__(self, name: str) -> EntityAccessor:
        return self._accessors[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._accessors)

    def __len__(self) -> int:
        return len(self._accessors)

    def __getattr__(self, name: str) -> EntityAccessor:
        accessors = self.__dict__.get("_accessors", {})
        try:
            return accessors[name]
        except KeyError:
            raise AttributeError(f"Unknown entity '{name}'") from None

    def __repr__(self) -> str:
        return f"<BoundEntitySet({self.locator}, {len(self)} entities)>"


class ModelFactory:
    """
    Process-wide cache of BoundEntitySet objects keyed by store locator.

    A cached set is reused only while it belongs to the connection passed
    in; when the connection cache has replaced a dead connection the set
    is rebound against the new one.
    """

    def __init__(self) -> None:
        self._entity_sets: dict[str, BoundEntitySet] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._bind_count = 0

    @property
    def bind_count(self) -> int:
        """Number of schema bindings performed since startup."""
        return self._bind_count

    def __contains__(self, locator: str) -> bool:
        return locator in self._entity_sets

    def _cached(self, connection: TenantConnection, locator: str) -> BoundEntitySet | None:
        cached = self._entity_sets.get(locator)
        if cached is not None and cached.connection is connection:
            return cached
        return None

    async def get_entity_set(self, connection: TenantConnection, locator: str) -> BoundEntitySet:
        """
        Get or bind the entity set of a tenant.

        Args:
            connection: Live connection of the tenant.
            locator: Store locator used as cache key.

        Returns:
            BoundEntitySet with one accessor per entity in ENTITY_MODELS.

        Raises:
            SchemaBindingError: Table creation failed; nothing is cached.
        """
        cached = self._cached(connection, locator)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(locator, asyncio.Lock())
        async with lock:
            cached = self._cached(connection, locator)
            if cached is not None:
                return cached

            entity_set = await self._bind(connection, locator)
            self._entity_sets[locator] = entity_set
            return entity_set

    async def _bind(self, connection: TenantConnection, locator: str) -> BoundEntitySet:
        try:
            async with connection.engine.begin() as conn:
                await conn.run_sync(TenantBase.metadata.create_all)
        except Exception as e:
            logger.error(f"Failed to bind clinic schema for {locator}: {e}")
            raise SchemaBindingError(locator, type(e).__name__) from e

        accessors = {
            name: EntityAccessor(name, model, connection.session_factory, locator)
            for name, model in ENTITY_MODELS.items()
        }
        self._bind_count += 1
        logger.info(f"Bound {len(accessors)} entities (schema v{SCHEMA_VERSION}) for tenant store {locator}")
        return BoundEntitySet(locator, connection, accessors)

    def evict(self, locator: str) -> None:
        self._entity_sets.pop(locator, None)
        self._locks.pop(locator, None)

    def clear(self) -> None:
        self._entity_sets.clear()
