import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from tenantcare.config.settings import Settings
from tenantcare.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

_POOL_SIZING_OPTIONS = ("pool_size", "max_overflow", "pool_timeout")


def normalize_async_url(url: str | URL) -> URL:
    """Ensure the URL names an asyncio driver (asyncpg / aiosqlite)."""
    parsed = make_url(url) if isinstance(url, str) else url
    if parsed.drivername in ("postgresql", "postgres", "postgresql+psycopg2"):
        return parsed.set(drivername="postgresql+asyncpg")
    if parsed.drivername == "sqlite":
        return parsed.set(drivername="sqlite+aiosqlite")
    if parsed.drivername in ("postgresql+asyncpg", "sqlite+aiosqlite"):
        return parsed
    raise InvalidInputError(f"Unsupported database driver: {parsed.drivername}")


def is_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite"


def build_tenant_url(base_url: str | URL, locator: str) -> URL:
    """
    Derive the address of a tenant database from the base address.

    PostgreSQL: the database name is replaced by the locator, keeping host,
    credentials and query options (sslmode etc.) untouched.
    SQLite: the base database path is a directory and the tenant database
    is the file ``<directory>/<locator>.db`` inside it.
    """
    base = normalize_async_url(base_url)
    if is_sqlite(base):
        if not base.database or base.database == ":memory:":
            raise InvalidInputError("SQLite tenant base URL must point to a directory")
        return base.set(database=str(Path(base.database) / f"{locator}.db"))
    return base.set(database=locator)


def mask_url(url: str | URL) -> str:
    """Render a URL for logs with the password hidden."""
    parsed = make_url(url) if isinstance(url, str) else url
    return parsed.render_as_string(hide_password=True)


def engine_options(url: URL, settings: Settings) -> dict[str, Any]:
    """Engine keyword arguments for the given URL (SQLite ignores pool sizing)."""
    options = dict(settings.engine_options)
    if is_sqlite(url):
        for key in _POOL_SIZING_OPTIONS:
            options.pop(key, None)
    return options


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the async session factory used for every database in the app."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


class RegistryDatabase:
    """
    Owner of the single fixed-location registry database.

    Created once at startup (see core.lifecycle) and shared by every request.
    """

    def __init__(self, settings: Settings, url: str | None = None) -> None:
        self._url = normalize_async_url(url or settings.registry_database_url)
        self._settings = settings
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def url(self) -> URL:
        return self._url

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            if is_sqlite(self._url) and self._url.database:
                Path(self._url.database).parent.mkdir(parents=True, exist_ok=True)
            self._engine = create_async_engine(self._url, **engine_options(self._url, self._settings))
            self._session_factory = create_session_factory(self._engine)
            logger.info(f"Registry engine created for {mask_url(self._url)}")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            _ = self.engine
        assert self._session_factory is not None
        return self._session_factory

    async def create_schema(self) -> None:
        """Create the registry tables if they do not exist yet."""
        from tenantcare.models.db.base import RegistryBase

        async with self.engine.begin() as conn:
            await conn.run_sync(RegistryBase.metadata.create_all)
        logger.info("Registry schema ensured")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Context manager for registry operations.

        Commits on success, rolls back and re-raises on error.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                logger.error(f"Registry database error: {e}")
                await session.rollback()
                raise

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Registry engine disposed")
