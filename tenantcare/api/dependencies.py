# ============================================================================
# SCOPE: MIXED
# Description: FastAPI dependencies. Global services come from app.state;
#              get_tenant_context resolves the clinic of each request.
# Tenant-Aware: Partial - get_tenant_context IS tenant resolution.
# ============================================================================
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tenantcare.core.exceptions import ForbiddenError
from tenantcare.core.tenancy import ClinicRegistry, TenantContext, TenantResolver
from tenantcare.services import ClinicService, OnboardingService

logger = logging.getLogger(__name__)

# Missing header surfaces as UnauthenticatedError (401)
bearer_scheme = HTTPBearer(auto_error=False)


# ============================================================
# [GLOBAL] - Services created once by the lifespan
# ============================================================


def get_registry(request: Request) -> ClinicRegistry:
    return request.app.state.registry


def get_resolver(request: Request) -> TenantResolver:
    return request.app.state.resolver


def get_onboarding_service(request: Request) -> OnboardingService:
    return request.app.state.onboarding_service


def get_clinic_service(request: Request) -> ClinicService:
    return request.app.state.clinic_service


# ============================================================
# [MULTI-TENANT] - Per-request tenant context
# ============================================================


async def get_tenant_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),  # noqa: B008
    resolver: TenantResolver = Depends(get_resolver),  # noqa: B008
) -> TenantContext:
    """
    Resolve the caller token into a TenantContext.

    Usage:
        @router.get("/items")
        async def list_items(context: TenantContext = Depends(get_tenant_context)):
            entities = context.require_entities()
    """
    token = credentials.credentials if credentials else None
    context = await resolver.resolve_token(token)
    if context.has_tenant:
        request.state.store_locator = context.store_locator
    return context


async def require_super_admin(context: TenantContext = Depends(get_tenant_context)) -> TenantContext:  # noqa: B008
    """Tenant context of the platform super-admin only."""
    if not context.is_super_admin:
        raise ForbiddenError("Platform admin access required")
    return context
