"""
Physical creation of tenant databases.

PostgreSQL needs the database to exist before the first connect, so new
clinics get a `CREATE DATABASE` through an AUTOCOMMIT maintenance
connection. SQLite creates the file on connect; only the directory must
exist.
"""

import logging
import re
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import create_async_engine

from tenantcare.core.exceptions import InvalidInputError, TenantConnectionError
from tenantcare.database.async_db import build_tenant_url, is_sqlite, mask_url, normalize_async_url

logger = logging.getLogger(__name__)

# Locators are generated from slugs, but they are also read back from tokens
_LOCATOR_PATTERN = re.compile(r"^[a-z0-9_]{1,63}$")


def validate_locator(locator: str) -> str:
    if not locator or not _LOCATOR_PATTERN.match(locator):
        raise InvalidInputError(f"Invalid store locator: {locator!r}")
    return locator


class TenantStoreProvisioner:
    """Creates the database behind a store locator if it does not exist yet."""

    def __init__(self, base_url: str | URL) -> None:
        self._base_url = normalize_async_url(base_url)

    async def ensure_store(self, locator: str) -> None:
        validate_locator(locator)
        if is_sqlite(self._base_url):
            target = build_tenant_url(self._base_url, locator)
            Path(target.database).parent.mkdir(parents=True, exist_ok=True)
            return
        await self._ensure_postgres_database(locator)

    async def _ensure_postgres_database(self, locator: str) -> None:
        engine = create_async_engine(self._base_url, isolation_level="AUTOCOMMIT")
        try:
            async with engine.connect() as conn:
                result = await conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"),
                    {"name": locator},
                )
                if result.scalar() is None:
                    # Identifier cannot be bound; validate_locator restricts it to [a-z0-9_]
                    await conn.execute(text(f'CREATE DATABASE "{locator}"'))
                    logger.info(f"Created tenant database {locator} on {mask_url(self._base_url)}")
        except Exception as e:
            logger.error(f"Failed to provision tenant database {locator}: {e}")
            raise TenantConnectionError(locator, "database could not be created") from e
        finally:
            await engine.dispose()
