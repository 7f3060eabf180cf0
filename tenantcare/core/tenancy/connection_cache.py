# ============================================================================
# SCOPE: MULTI-TENANT
# Description: Per-tenant connection cache, one engine per store locator.
# Tenant-Aware: Yes - single entry point for a live tenant connection.
# ============================================================================
"""
TenantConnectionCache - one live database connection per tenant store.

The cache is process-wide and keyed by store locator. Creation is guarded
by a per-locator asyncio.Lock, so N concurrent first requests for the same
tenant establish exactly one engine; the others wait and reuse it.

Usage:
    cache = TenantConnectionCache(settings)
    connection = await cache.get_connection("clinic_sunrise_clinic_1718000000000")
    async with connection.session_factory() as session:
        ...
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from tenantcare.config.settings import Settings
from tenantcare.core.exceptions import TenantConnectionError
from tenantcare.database.async_db import build_tenant_url, create_session_factory, engine_options, mask_url

logger = logging.getLogger(__name__)

EngineFactory = Callable[..., AsyncEngine]


class ConnectionState(str, enum.Enum):
    CONNECTING = "connecting"
    READY = "ready"
    CLOSED = "closed"


class TenantConnection:
    """
    Live handle to one tenant database.

    Owns the AsyncEngine and its session factory. `state` decides whether the
    cache can hand the handle out again or must recreate it.
    """

    def __init__(self, locator: str, url: URL, engine: AsyncEngine) -> None:
        self.locator = locator
        self.url = url
        self.engine = engine
        self.session_factory: async_sessionmaker[AsyncSession] = create_session_factory(engine)
        self.state = ConnectionState.CONNECTING

    def __repr__(self) -> str:
        return f"<TenantConnection({self.locator}, state={self.state.value})>"

    @property
    def is_ready(self) -> bool:
        return self.state is ConnectionState.READY

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    def mark_closed(self) -> None:
        """Flag the handle as dead; the next cache lookup recreates it."""
        self.state = ConnectionState.CLOSED

    async def close(self) -> None:
        self.state = ConnectionState.CLOSED
        await self.engine.dispose()


class TenantConnectionCache:
    """
    Process-wide cache of TenantConnection objects keyed by store locator.

    Entries are created lazily, revalidated on every lookup (a closed handle
    is replaced transparently) and only populated after a successful ping,
    so a failed or timed-out connection attempt leaves nothing behind.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        base_url: str | URL | None = None,
        engine_factory: EngineFactory | None = None,
        connect_timeout: float | None = None,
    ) -> None:
        self._settings = settings
        self._base_url = base_url or settings.tenant_database_url
        self._engine_factory = engine_factory or create_async_engine
        self._connect_timeout = connect_timeout or settings.TENANT_CONNECT_TIMEOUT
        self._connections: dict[str, TenantConnection] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, locator: str) -> bool:
        return locator in self._connections

    def locators(self) -> list[str]:
        return list(self._connections)

    def url_for(self, locator: str) -> URL:
        return build_tenant_url(self._base_url, locator)

    async def get_connection(self, locator: str) -> TenantConnection:
        """
        Get or create the connection for a tenant.

        Args:
            locator: Store locator of the tenant.

        Returns:
            A ready TenantConnection (the same object for every caller).

        Raises:
            TenantConnectionError: Store unreachable or connect timeout exceeded.
        """
        cached = self._connections.get(locator)
        if cached is not None and cached.is_ready:
            return cached

        lock = self._locks.setdefault(locator, asyncio.Lock())
        async with lock:
            # Another caller may have finished while we waited
            cached = self._connections.get(locator)
            if cached is not None:
                if cached.is_ready:
                    return cached
                logger.warning(f"Discarding stale connection for tenant store {locator} ({cached.state.value})")
                del self._connections[locator]
                await self._dispose_quietly(cached)

            connection = await self._establish(locator)
            self._connections[locator] = connection
            return connection

    async def _establish(self, locator: str) -> TenantConnection:
        url = self.url_for(locator)
        logger.info(f"Connecting to tenant store {locator} -> {mask_url(url)}")

        engine = self._engine_factory(url, **self._engine_kwargs(url))
        connection = TenantConnection(locator, url, engine)
        try:
            await asyncio.wait_for(connection.ping(), timeout=self._connect_timeout)
        except asyncio.TimeoutError as e:
            await self._dispose_quietly(connection)
            raise TenantConnectionError(locator, f"timed out after {self._connect_timeout}s") from e
        except Exception as e:
            await self._dispose_quietly(connection)
            raise TenantConnectionError(locator, type(e).__name__) from e
        except BaseException:
            # Cancelled while pinging
            await self._dispose_quietly(connection)
            raise

        connection.state = ConnectionState.READY
        logger.info(f"Tenant store connected: {locator}")
        return connection

    def _engine_kwargs(self, url: URL) -> dict[str, Any]:
        return engine_options(url, self._settings)

    async def _dispose_quietly(self, connection: TenantConnection) -> None:
        try:
            await connection.close()
        except Exception as e:
            logger.warning(f"Error disposing engine for {connection.locator}: {e}")

    async def invalidate(self, locator: str) -> None:
        """Drop and dispose the cached connection of one tenant, if any."""
        connection = self._connections.pop(locator, None)
        if connection is not None:
            await self._dispose_quietly(connection)
            logger.info(f"Invalidated connection for tenant store {locator}")

    async def close_all(self) -> None:
        for locator in list(self._connections):
            await self.invalidate(locator)
