# ============================================================================
# SCOPE: MULTI-TENANT
# Description: Resolves the caller token of a request into a TenantContext.
# Tenant-Aware: Yes - the only place a request gets its clinic store.
# ============================================================================
"""
TenantResolver - per-request tenant resolution.

Steps for every authenticated request:
    1. Decode the bearer token (UnauthenticatedError if absent or invalid).
    2. Super-admin token: synthetic identity; the clinic named by the token,
       if any, is attached best-effort.
    3. Any other token must carry a store locator.
    4. Resolve connection + entity set through TenantStoreService.
    5. Load the caller from that clinic's User table. A store that fails
       this first query has its handle closed and yields TenantConnectionError.
    6. Return the complete TenantContext.

The registry is never consulted here: the locator signed into the token is
the only routing input, so authenticated traffic costs no registry round-trip.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import InterfaceError, OperationalError

from tenantcare.config.settings import Settings
from tenantcare.core.exceptions import (
    InvalidInputError,
    TenancyError,
    TenantConnectionError,
    UnauthenticatedError,
)
from tenantcare.models.auth import TokenClaims
from tenantcare.services.token_service import TokenService

from .context import SuperAdminIdentity, TenantContext, TenantUserIdentity
from .store_service import TenantStoreService

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: str | None) -> str:
    """Token of an `Authorization: Bearer <token>` header."""
    if not authorization:
        raise UnauthenticatedError("Authentication required")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthenticatedError("Bearer authentication scheme expected")
    return parts[1]


class TenantResolver:
    def __init__(self, token_service: TokenService, store_service: TenantStoreService, settings: Settings) -> None:
        self.token_service = token_service
        self.store_service = store_service
        self.settings = settings

    def is_super_admin(self, claims: TokenClaims) -> bool:
        return claims.sub == self.settings.SUPER_ADMIN_ID

    async def resolve_token(self, token: str | None) -> TenantContext:
        """
        Build the TenantContext of a request from its bearer token.

        Raises:
            UnauthenticatedError: Missing/invalid token, missing locator, unknown user.
            TenantConnectionError: The caller's clinic store is unreachable.
            SchemaBindingError: The clinic schema could not be bound.
        """
        if not token:
            raise UnauthenticatedError("Authentication required")
        claims = self.token_service.decode_token(token)

        if self.is_super_admin(claims):
            return await self._resolve_super_admin(claims)

        if not claims.has_tenant:
            raise UnauthenticatedError("Token missing tenant, please log in again")

        locator = claims.store_locator
        try:
            store = await self.store_service.resolve(locator)
        except InvalidInputError as e:
            raise UnauthenticatedError("Invalid token, please log in again") from e

        try:
            user = await store.entities.User.get(claims.user_id)
        except (OperationalError, InterfaceError) as e:
            # Dead store behind a cached handle: the next lookup reconnects
            store.connection.mark_closed()
            logger.warning(f"Tenant store {locator} stopped answering: {type(e).__name__}")
            raise TenantConnectionError(locator, type(e).__name__) from e
        if user is None:
            raise UnauthenticatedError("User not found")

        return TenantContext(
            caller=TenantUserIdentity(user=user, store_locator=locator),
            store_locator=locator,
            connection=store.connection,
            entities=store.entities,
        )

    async def _resolve_super_admin(self, claims: TokenClaims) -> TenantContext:
        caller = SuperAdminIdentity(admin_id=claims.sub, email=claims.email, role=claims.role)
        if not claims.has_tenant:
            return TenantContext(caller=caller)

        try:
            store = await self.store_service.resolve(claims.store_locator)
        except TenancyError as e:
            logger.warning(f"Super-admin continuing without clinic {claims.store_locator}: {e}")
            return TenantContext(caller=caller)

        return TenantContext(
            caller=caller,
            store_locator=store.locator,
            connection=store.connection,
            entities=store.entities,
        )
