# ============================================================================
# SCOPE: GLOBAL
# Description: Clinic registry - one TenantRecord per onboarded clinic.
# Tenant-Aware: No - maps human-facing names and codes to store locators.
# ============================================================================
"""
ClinicRegistry - create, look up and search clinics in the registry database.

The registry is the only store shared by all clinics. It answers "which
tenant store belongs to this join code / slug" and holds the platform
super-admin credentials. Clinic data never lives here.
"""

from __future__ import annotations

import logging
import re
import secrets
import string
import time
from collections.abc import Callable, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tenantcare.config.settings import Settings
from tenantcare.core.exceptions import ConflictError, InvalidInputError, JoinCodeExhaustedError, NotFoundError
from tenantcare.database.async_db import RegistryDatabase
from tenantcare.models.db.registry import PlatformAdmin, TenantRecord

logger = logging.getLogger(__name__)

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_LOCATOR_LENGTH = 63

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(display_name: str) -> str:
    """
    Normalise a display name: lowercase, non-alphanumeric runs collapsed to
    one underscore, leading/trailing underscores stripped.

    >>> slugify("Sunrise Clinic")
    'sunrise_clinic'
    """
    return _NON_ALNUM.sub("_", display_name.strip().lower()).strip("_")


def build_store_locator(prefix: str, slug: str, created_ms: int) -> str:
    """
    Locator of a new clinic store: ``<prefix>_<slug>_<created_ms>``.

    The creation timestamp keeps locators distinct for identical names. The
    slug part is shortened so the result fits a PostgreSQL identifier.
    """
    suffix = f"_{created_ms}"
    head = f"{prefix}_{slug}" if prefix else slug
    head = head[: MAX_LOCATOR_LENGTH - len(suffix)].rstrip("_")
    return f"{head}{suffix}"


def generate_join_code(length: int = 6) -> str:
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))


def _conflict_from(error: IntegrityError) -> ConflictError:
    """ConflictError naming the unique column reported by the database."""
    detail = str(error.orig).lower()
    if "owner_email" in detail:
        return ConflictError("A clinic is already registered with this email", field="owner_email")
    if "join_code" in detail:
        return ConflictError("Join code already taken, please try again", field="join_code")
    return ConflictError("A clinic with this name already exists", field="slug")


class ClinicRegistry:
    """
    Data access for TenantRecord and PlatformAdmin.

    Usage:
        registry = ClinicRegistry(registry_db, settings)
        clinic = await registry.create_tenant("Sunrise Clinic", "admin@sunrise.com")
        same = await registry.find_by_join_code(clinic.join_code.lower())
    """

    def __init__(
        self,
        db: RegistryDatabase,
        settings: Settings,
        *,
        code_generator: Callable[[int], str] = generate_join_code,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self._code_generator = code_generator
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_tenant(self, display_name: str, owner_email: str) -> TenantRecord:
        """
        Register a new clinic.

        Raises:
            InvalidInputError: Name has no alphanumeric character.
            ConflictError: Slug or owner email already registered.
            JoinCodeExhaustedError: No free join code within the attempt cap.
        """
        display_name = (display_name or "").strip()
        slug = slugify(display_name)
        if not slug:
            raise InvalidInputError("Clinic name must contain letters or digits")
        owner_email = owner_email.strip().lower()

        try:
            async with self.db.session() as session:
                record = await self._insert_tenant(session, display_name, slug, owner_email)
        except IntegrityError as e:
            # Lost a race against a concurrent signup
            raise _conflict_from(e) from e

        logger.info(f"Clinic registered: {record.slug} -> {record.store_locator}")
        return record

    async def _insert_tenant(
        self, session: AsyncSession, display_name: str, slug: str, owner_email: str
    ) -> TenantRecord:
        existing = await session.execute(select(TenantRecord.tenant_id).where(TenantRecord.slug == slug))
        if existing.first() is not None:
            raise ConflictError("A clinic with this name already exists", field="slug")

        existing = await session.execute(select(TenantRecord.tenant_id).where(TenantRecord.owner_email == owner_email))
        if existing.first() is not None:
            raise ConflictError("A clinic is already registered with this email", field="owner_email")

        record = TenantRecord(
            display_name=display_name,
            slug=slug,
            store_locator=build_store_locator(self.settings.TENANT_STORE_PREFIX, slug, self._clock_ms()),
            owner_email=owner_email,
            join_code=await self._draw_join_code(session),
            is_active=True,
        )
        session.add(record)
        await session.flush()
        return record

    async def _draw_join_code(self, session: AsyncSession) -> str:
        attempts = self.settings.JOIN_CODE_MAX_ATTEMPTS
        for _ in range(attempts):
            code = self._code_generator(self.settings.JOIN_CODE_LENGTH).upper()
            taken = await session.execute(select(TenantRecord.tenant_id).where(TenantRecord.join_code == code))
            if taken.first() is None:
                return code
        raise JoinCodeExhaustedError(attempts)

    # =========================================================================
    # Lookups
    # =========================================================================

    async def find_by_join_code(self, code: str) -> TenantRecord:
        """Active clinic owning `code` (case-insensitive); NotFoundError otherwise."""
        normalized = (code or "").strip().upper()
        if normalized:
            record = await self._first(
                select(TenantRecord).where(
                    TenantRecord.join_code == normalized,
                    TenantRecord.is_active.is_(True),
                )
            )
            if record is not None:
                return record
        raise NotFoundError("Invalid clinic code")

    async def find_by_slug(self, slug: str) -> TenantRecord:
        record = await self._first(select(TenantRecord).where(TenantRecord.slug == slug))
        if record is None:
            raise NotFoundError(f"Clinic '{slug}' not found")
        return record

    async def find_by_locator(self, locator: str) -> TenantRecord:
        record = await self._first(select(TenantRecord).where(TenantRecord.store_locator == locator))
        if record is None:
            raise NotFoundError("Clinic not found")
        return record

    async def list_active(self) -> Sequence[TenantRecord]:
        """
        Every active clinic, oldest first.

        O(clinic count): only used by login without a clinic code.
        """
        async with self.db.session_factory() as session:
            result = await session.execute(
                select(TenantRecord).where(TenantRecord.is_active.is_(True)).order_by(TenantRecord.created_at)
            )
            return list(result.scalars().all())

    async def search_by_name_prefix(self, query: str, limit: int | None = None) -> Sequence[TenantRecord]:
        """Active clinics whose display name contains `query`, case-insensitive."""
        query = (query or "").strip()
        if not query:
            return []
        limit = limit or self.settings.CLINIC_SEARCH_LIMIT
        pattern = f"%{_escape_like(query.lower())}%"
        async with self.db.session_factory() as session:
            result = await session.execute(
                select(TenantRecord)
                .where(
                    TenantRecord.is_active.is_(True),
                    func.lower(TenantRecord.display_name).like(pattern, escape="\\"),
                )
                .order_by(TenantRecord.display_name)
                .limit(limit)
            )
            return list(result.scalars().all())

    async def deactivate(self, slug: str) -> TenantRecord:
        """Soft-disable a clinic; it disappears from lookups and login scans."""
        async with self.db.session() as session:
            result = await session.execute(
                update(TenantRecord).where(TenantRecord.slug == slug).values(is_active=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Clinic '{slug}' not found")
        logger.info(f"Clinic deactivated: {slug}")
        return await self.find_by_slug(slug)

    async def discard_tenant(self, tenant_id: str) -> None:
        """
        Remove a record whose clinic store could not be provisioned.

        Only for rolling back a failed creation; live clinics are deactivated.
        """
        async with self.db.session() as session:
            await session.execute(delete(TenantRecord).where(TenantRecord.tenant_id == tenant_id))
        logger.warning(f"Discarded unprovisioned clinic record {tenant_id}")

    async def _first(self, stmt) -> TenantRecord | None:
        async with self.db.session_factory() as session:
            result = await session.execute(stmt.limit(1))
            return result.scalars().first()

    # =========================================================================
    # Platform super-admin
    # =========================================================================

    async def get_platform_admin(self, email: str) -> PlatformAdmin | None:
        async with self.db.session_factory() as session:
            result = await session.execute(select(PlatformAdmin).where(PlatformAdmin.email == email.strip().lower()))
            return result.scalars().first()

    async def upsert_platform_admin(self, admin_id: str, email: str, password_hash: str) -> tuple[PlatformAdmin, bool]:
        """Create or update the super-admin record; returns (admin, created)."""
        email = email.strip().lower()
        async with self.db.session() as session:
            admin = await session.get(PlatformAdmin, admin_id)
            created = admin is None
            if created:
                admin = PlatformAdmin(id=admin_id, email=email, password_hash=password_hash)
                session.add(admin)
            else:
                admin.email = email
                admin.password_hash = password_hash
            await session.flush()
        return admin, created


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
