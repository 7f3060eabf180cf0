import pytest

from tenantcare.core.exceptions import ForbiddenError, NoTenantAttachedError, NotFoundError
from tenantcare.core.tenancy import SuperAdminIdentity, TenantContext
from tests.conftest import TEST_PASSWORD


async def context_for(resolver, result) -> TenantContext:
    return await resolver.resolve_token(result.token)


@pytest.mark.unit
class TestClinicDiscovery:
    @pytest.mark.asyncio
    async def test_search_returns_public_fields_only(self, onboarding, clinic_service):
        await onboarding.create_clinic("Sunrise Clinic", "owner", "owner@sunrise.com", TEST_PASSWORD)

        results = await clinic_service.search("sun")

        assert [item["display_name"] for item in results] == ["Sunrise Clinic"]
        assert set(results[0]) == {"tenant_id", "display_name", "slug"}

    @pytest.mark.asyncio
    async def test_get_by_code(self, onboarding, clinic_service):
        created = await onboarding.create_clinic("Sunrise Clinic", "owner", "owner@sunrise.com", TEST_PASSWORD)

        clinic = await clinic_service.get_by_code(created.clinic["join_code"])

        assert clinic["slug"] == "sunrise_clinic"
        assert "join_code" not in clinic
        with pytest.raises(NotFoundError):
            await clinic_service.get_by_code("NOPE00")


@pytest.mark.unit
class TestClinicProfile:
    """Tenant-side clinic profile"""

    @pytest.mark.asyncio
    async def test_profile_of_callers_clinic(self, onboarding, resolver, clinic_service):
        created = await onboarding.create_clinic("Sunrise Clinic", "owner", "owner@sunrise.com", TEST_PASSWORD)
        context = await context_for(resolver, created)

        profile = await clinic_service.get_profile(context)

        assert profile.clinic_name == "Sunrise Clinic"
        assert profile.setup_complete is False

    @pytest.mark.asyncio
    async def test_missing_profile_created_from_registry_name(self, onboarding, resolver, clinic_service):
        created = await onboarding.create_clinic("Sunrise Clinic", "owner", "owner@sunrise.com", TEST_PASSWORD)
        context = await context_for(resolver, created)
        existing = await context.entities.ClinicProfile.find_one(is_singleton=True)
        await context.entities.ClinicProfile.delete(existing.id)

        profile = await clinic_service.get_profile(context)

        assert profile.id != existing.id
        assert profile.clinic_name == "Sunrise Clinic"
        assert await context.entities.ClinicProfile.count() == 1

    @pytest.mark.asyncio
    async def test_admin_updates_profile(self, onboarding, resolver, clinic_service):
        created = await onboarding.create_clinic("Sunrise Clinic", "owner", "owner@sunrise.com", TEST_PASSWORD)
        context = await context_for(resolver, created)

        profile = await clinic_service.update_profile(
            context, {"city": "Lisbon", "phone": "+351 21 000 0000", "setup_complete": False, "is_singleton": False}
        )

        assert profile.city == "Lisbon"
        assert profile.phone == "+351 21 000 0000"
        assert profile.setup_complete is True
        assert profile.is_singleton is True

    @pytest.mark.asyncio
    async def test_empty_update_is_noop(self, onboarding, resolver, clinic_service):
        created = await onboarding.create_clinic("Sunrise Clinic", "owner", "owner@sunrise.com", TEST_PASSWORD)
        context = await context_for(resolver, created)

        profile = await clinic_service.update_profile(context, {"city": None})

        assert profile.setup_complete is False

    @pytest.mark.asyncio
    async def test_patient_cannot_update_profile(self, onboarding, resolver, clinic_service):
        created = await onboarding.create_clinic("Sunrise Clinic", "owner", "owner@sunrise.com", TEST_PASSWORD)
        patient = await onboarding.join_clinic(
            created.clinic["join_code"], "pat", "pat@x.com", TEST_PASSWORD, "patient"
        )
        context = await context_for(resolver, patient)

        with pytest.raises(ForbiddenError, match="Only admins"):
            await clinic_service.update_profile(context, {"city": "Lisbon"})

    @pytest.mark.asyncio
    async def test_super_admin_without_clinic_has_no_profile(self, clinic_service, settings):
        context = TenantContext(caller=SuperAdminIdentity(admin_id=settings.SUPER_ADMIN_ID))

        with pytest.raises(NoTenantAttachedError):
            await clinic_service.get_profile(context)
