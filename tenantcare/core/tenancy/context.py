"""
Per-request tenant context.

Built once by the tenant resolver and passed explicitly to route handlers
as a FastAPI dependency value. The caller is either the platform
super-admin or a user of exactly one clinic; handlers pattern-match on the
identity type instead of comparing magic ids.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from tenantcare.core.exceptions import NoTenantAttachedError
from tenantcare.models.auth import NO_TENANT_LOCATOR
from tenantcare.models.db.clinic import User

from .connection_cache import TenantConnection
from .model_factory import BoundEntitySet


@dataclass(frozen=True)
class SuperAdminIdentity:
    """Synthetic identity of the platform super-admin; belongs to no clinic."""

    admin_id: str
    email: str | None = None
    role: str = "admin"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.admin_id, "email": self.email, "role": self.role, "is_super_admin": True}


@dataclass(frozen=True)
class TenantUserIdentity:
    """A clinic member resolved from that clinic's own User table."""

    user: User
    store_locator: str

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def role(self) -> str:
        return self.user.role

    def to_dict(self) -> dict[str, Any]:
        data = self.user.to_dict()
        data["store_locator"] = self.store_locator
        return data


CallerIdentity = Union[SuperAdminIdentity, TenantUserIdentity]


@dataclass(frozen=True)
class TenantContext:
    """
    Resolved context of one authenticated request.

    `connection` and `entities` are both set or both None; they are None
    only for a super-admin operating without a clinic.
    """

    caller: CallerIdentity
    store_locator: str = NO_TENANT_LOCATOR
    connection: TenantConnection | None = None
    entities: BoundEntitySet | None = None

    @property
    def has_tenant(self) -> bool:
        return self.entities is not None

    @property
    def is_super_admin(self) -> bool:
        return isinstance(self.caller, SuperAdminIdentity)

    @property
    def role(self) -> str:
        return self.caller.role

    def require_entities(self) -> BoundEntitySet:
        """Entity set of the attached clinic; NoTenantAttachedError if none."""
        if self.entities is None:
            raise NoTenantAttachedError()
        return self.entities
