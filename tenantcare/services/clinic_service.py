"""
Clinic discovery (registry side) and clinic profile (tenant side).
"""

import logging
from typing import Any, Dict, List

from tenantcare.core.exceptions import ForbiddenError
from tenantcare.core.tenancy.context import TenantContext
from tenantcare.core.tenancy.registry import ClinicRegistry
from tenantcare.models.db.clinic import ClinicProfile

logger = logging.getLogger(__name__)

PROFILE_ADMIN_ROLES = ("admin", "clinic_admin")
PROFILE_FIELDS = (
    "clinic_name",
    "clinic_logo_url",
    "address",
    "city",
    "state",
    "zip_code",
    "phone",
    "email",
    "website",
    "tax_id",
    "description",
)


class ClinicService:
    def __init__(self, registry: ClinicRegistry):
        self.registry = registry

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """Public search of active clinics by name."""
        records = await self.registry.search_by_name_prefix(query)
        return [record.to_public_dict() for record in records]

    async def get_by_code(self, code: str) -> Dict[str, Any]:
        """Public view of the clinic owning a join code (shown before signup)."""
        record = await self.registry.find_by_join_code(code)
        return record.to_public_dict()

    async def get_profile(self, context: TenantContext) -> ClinicProfile:
        """Singleton profile of the caller's clinic, created on first access."""
        entities = context.require_entities()
        profile = await entities.ClinicProfile.find_one(is_singleton=True)
        if profile is None:
            record = await self.registry.find_by_locator(context.store_locator)
            profile = await entities.ClinicProfile.create(clinic_name=record.display_name, is_singleton=True)
            logger.info(f"Created default clinic profile for {context.store_locator}")
        return profile

    async def update_profile(self, context: TenantContext, values: Dict[str, Any]) -> ClinicProfile:
        """Update the clinic profile; only clinic admins and the super-admin may."""
        if context.role not in PROFILE_ADMIN_ROLES:
            raise ForbiddenError("Only admins can update clinic profile")

        profile = await self.get_profile(context)
        changes = {key: value for key, value in values.items() if key in PROFILE_FIELDS and value is not None}
        if not changes:
            return profile
        changes["setup_complete"] = True

        entities = context.require_entities()
        updated = await entities.ClinicProfile.update(profile.id, **changes)
        logger.info(f"Clinic profile updated for {context.store_locator}: {sorted(changes)}")
        return updated or profile
