"""Database access helpers: URL handling, session factories and the registry database."""

from tenantcare.database.async_db import (
    RegistryDatabase,
    build_tenant_url,
    create_session_factory,
    engine_options,
    is_sqlite,
    mask_url,
    normalize_async_url,
)

__all__ = [
    "RegistryDatabase",
    "build_tenant_url",
    "create_session_factory",
    "engine_options",
    "is_sqlite",
    "mask_url",
    "normalize_async_url",
]
