"""
Registry models - one row per onboarded clinic plus the platform admin.

These tables live in the registry database only; clinic data never does.
"""

import uuid
from typing import Any

from sqlalchemy import Boolean, Column, Index, String

from .base import RegistryBase, TimestampMixin

CLINIC_NAME_MAX_LENGTH = 255


class TenantRecord(RegistryBase, TimestampMixin):
    """
    One onboarded clinic.

    Attributes:
        tenant_id: Immutable global identifier (UUID string)
        display_name: Human-readable clinic name
        slug: Normalised, unique form of the display name (e.g. "sunrise_clinic")
        store_locator: Name of the clinic's isolated database; immutable
        owner_email: Email of the clinic administrator; one clinic per email
        join_code: Short code doctors and patients type to join the clinic
        is_active: Inactive clinics are skipped by lookups and login scans
    """

    __tablename__ = "tenants"

    tenant_id = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Unique clinic identifier",
    )

    display_name = Column(
        String(CLINIC_NAME_MAX_LENGTH),
        nullable=False,
        comment="Clinic name as entered at signup",
    )

    slug = Column(
        String(CLINIC_NAME_MAX_LENGTH),
        unique=True,
        nullable=False,
        index=True,
        comment="Lowercase unique derivation of the display name",
    )

    store_locator = Column(
        String(63),
        unique=True,
        nullable=False,
        comment="Database name of the clinic's isolated store",
    )

    owner_email = Column(
        String(255),
        unique=True,
        nullable=False,
        comment="Clinic administrator email",
    )

    join_code = Column(
        String(12),
        unique=True,
        nullable=False,
        index=True,
        comment="Uppercase code used by members to join the clinic",
    )

    is_active = Column(
        Boolean,
        default=True,
        nullable=False,
        comment="Soft-disable flag",
    )

    __table_args__ = (Index("idx_tenants_active_name", "is_active", "display_name"),)

    def __repr__(self) -> str:
        return f"<TenantRecord(slug='{self.slug}', store_locator='{self.store_locator}')>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "display_name": self.display_name,
            "slug": self.slug,
            "store_locator": self.store_locator,
            "owner_email": self.owner_email,
            "join_code": self.join_code,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def to_public_dict(self) -> dict[str, Any]:
        """Fields safe to show to anonymous clinic search users."""
        return {
            "tenant_id": self.tenant_id,
            "display_name": self.display_name,
            "slug": self.slug,
        }


class PlatformAdmin(RegistryBase, TimestampMixin):
    """Credentials of the platform super-admin, who belongs to no clinic."""

    __tablename__ = "platform_admins"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    username = Column(String(100), nullable=False, default="admin")
    password_hash = Column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<PlatformAdmin(email='{self.email}')>"
