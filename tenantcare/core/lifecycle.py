"""
Application lifecycle management using the FastAPI lifespan pattern.

Startup builds the process-wide services (registry database, tenant store
service, token service, notifier, onboarding) and publishes them on
`app.state`; shutdown disposes every engine.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tenantcare.config.settings import Settings, get_settings
from tenantcare.core.tenancy import ClinicRegistry, TenantResolver, TenantStoreService
from tenantcare.database.async_db import RegistryDatabase, mask_url
from tenantcare.services import ClinicService, OnboardingService, TokenService, create_notification_service

logger = logging.getLogger(__name__)


class LifecycleManager:
    """
    Manages application lifecycle events.

    Handles startup initialization and graceful shutdown.
    """

    def __init__(self, app: FastAPI, settings: Settings) -> None:
        self._app = app
        self._settings = settings
        self._registry_db: RegistryDatabase | None = None
        self._initialized = False

    async def startup(self) -> None:
        if self._initialized:
            logger.warning("Lifecycle already initialized, skipping startup")
            return

        logger.info("Starting application lifecycle...")
        settings = self._settings

        registry_db = RegistryDatabase(settings)
        await registry_db.create_schema()
        self._registry_db = registry_db

        registry = ClinicRegistry(registry_db, settings)
        store_service = TenantStoreService.from_settings(settings)
        token_service = TokenService(settings)
        notifier = create_notification_service(settings)

        state = self._app.state
        state.settings = settings
        state.registry_db = registry_db
        state.registry = registry
        state.store_service = store_service
        state.token_service = token_service
        state.notifier = notifier
        state.resolver = TenantResolver(token_service, store_service, settings)
        state.onboarding_service = OnboardingService(registry, store_service, token_service, notifier, settings)
        state.clinic_service = ClinicService(registry)

        self._log_configuration()
        self._initialized = True
        logger.info("Application lifecycle startup completed")

    async def shutdown(self) -> None:
        if not self._initialized:
            logger.warning("Lifecycle not initialized, skipping shutdown")
            return

        logger.info("Stopping application lifecycle...")
        state = self._app.state
        await state.store_service.close()
        await state.notifier.aclose()
        if self._registry_db is not None:
            await self._registry_db.dispose()

        self._initialized = False
        logger.info("Application lifecycle shutdown completed")

    def _log_configuration(self) -> None:
        settings = self._settings
        logger.info(f"  Registry: {mask_url(settings.registry_database_url)}")
        logger.info(f"  Tenant stores: {mask_url(settings.tenant_database_url)}")
        if not settings.NOTIFICATION_WEBHOOK_URL:
            logger.warning("NOTIFICATION_WEBHOOK_URL not configured - verification codes are only logged")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Usage:
        app = FastAPI(lifespan=lifespan)
    """
    settings = getattr(app.state, "settings", None) or get_settings()
    lifecycle = LifecycleManager(app, settings)

    await lifecycle.startup()

    yield

    await lifecycle.shutdown()
