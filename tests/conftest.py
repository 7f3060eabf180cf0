"""
Shared pytest fixtures.

Every test gets its own temporary directory holding a SQLite registry
database and a directory of per-clinic SQLite stores, so tests never share
state and need no running PostgreSQL.
"""

import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from tenantcare.config.settings import Settings
from tenantcare.core.tenancy import ClinicRegistry, TenantResolver, TenantStoreService
from tenantcare.database.async_db import RegistryDatabase
from tenantcare.services import ClinicService, LoggingNotificationService, OnboardingService, TokenService

TEST_PASSWORD = "Secret123"


# ============================================================================
# SETTINGS
# ============================================================================


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing the registry and the clinic stores at tmp_path."""
    stores_dir = tmp_path / "stores"
    stores_dir.mkdir()
    return Settings(
        JWT_SECRET_KEY="test-secret-key-for-tokens",
        REGISTRY_DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path}/registry.db",
        TENANT_DATABASE_URL=f"sqlite+aiosqlite:///{stores_dir}",
        TENANT_CONNECT_TIMEOUT=5.0,
        ACCESS_TOKEN_EXPIRE_MINUTES=60,
        ENVIRONMENT="test",
        SUPER_ADMIN_EMAIL="root@platform.com",
    )


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest_asyncio.fixture
async def registry_db(settings):
    db = RegistryDatabase(settings)
    await db.create_schema()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def registry(registry_db, settings) -> ClinicRegistry:
    return ClinicRegistry(registry_db, settings)


@pytest_asyncio.fixture
async def store_service(settings):
    service = TenantStoreService.from_settings(settings)
    yield service
    await service.close()


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def token_service(settings) -> TokenService:
    return TokenService(settings)


@pytest.fixture
def notifier():
    """Notifier whose send_verification_code is an AsyncMock (codes readable from await_args)."""
    service = LoggingNotificationService()
    service.send_verification_code = AsyncMock(return_value=True)
    return service


@pytest.fixture
def onboarding(registry, store_service, token_service, notifier, settings) -> OnboardingService:
    return OnboardingService(registry, store_service, token_service, notifier, settings)


@pytest.fixture
def resolver(token_service, store_service, settings) -> TenantResolver:
    return TenantResolver(token_service, store_service, settings)


@pytest.fixture
def clinic_service(registry) -> ClinicService:
    return ClinicService(registry)


def last_code(notifier) -> str:
    """Verification code of the most recent notification."""
    return notifier.send_verification_code.await_args.args[1]


# ============================================================================
# ENGINE STUBS
# ============================================================================


class StubConnection:
    async def execute(self, *args, **kwargs):
        return None

    async def run_sync(self, fn, *args, **kwargs):
        return None


class StubEngine:
    """
    Minimal stand-in for AsyncEngine.

    Args:
        delay: Seconds connect() waits before answering
        error: Exception raised by connect()
        bind_error: Exception raised by begin()
    """

    def __init__(self, delay: float = 0.0, error: Exception | None = None, bind_error: Exception | None = None):
        self.delay = delay
        self.error = error
        self.bind_error = bind_error
        self.disposed = False

    @asynccontextmanager
    async def connect(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        yield StubConnection()

    @asynccontextmanager
    async def begin(self):
        if self.bind_error is not None:
            raise self.bind_error
        yield StubConnection()

    async def dispose(self):
        self.disposed = True


class CountingEngineFactory:
    """Engine factory recording how many engines were built, and for which URLs."""

    def __init__(self, make_engine=None):
        self.make_engine = make_engine or (lambda url, **kwargs: StubEngine(delay=0.02))
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append(url)
        return self.make_engine(url, **kwargs)

    @property
    def count(self) -> int:
        return len(self.calls)
