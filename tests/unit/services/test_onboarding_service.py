from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from tenantcare.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    TenantConnectionError,
    UnauthenticatedError,
)
from tenantcare.models.auth import NO_TENANT_LOCATOR
from tests.conftest import TEST_PASSWORD, last_code


async def create_clinic(onboarding, name="Sunrise Clinic", email="owner@sunrise.com"):
    return await onboarding.create_clinic(name, "owner", email, TEST_PASSWORD)


async def join(onboarding, clinic, email, role="patient", profile=None):
    return await onboarding.join_clinic(clinic.clinic["join_code"], "member", email, TEST_PASSWORD, role, profile)


async def verify(onboarding, notifier, result):
    return await onboarding.verify_email(
        result.user["email"], last_code(notifier), store_locator=result.user["store_locator"]
    )


@pytest.mark.unit
class TestCreateClinic:
    """Clinic admin signup"""

    @pytest.mark.asyncio
    async def test_creates_registry_record_store_and_admin(self, onboarding, token_service, store_service, notifier):
        result = await create_clinic(onboarding)

        locator = result.clinic["store_locator"]
        assert locator.startswith("clinic_sunrise_clinic_")
        assert result.clinic["join_code"]
        assert result.user["role"] == "clinic_admin"
        assert result.user["verification_status"] == "pending"
        assert "password_hash" not in result.user
        assert token_service.decode_token(result.token).store_locator == locator

        store = await store_service.resolve(locator)
        profile = await store.entities.ClinicProfile.find_one(is_singleton=True)
        assert profile.clinic_name == "Sunrise Clinic"
        assert profile.email == "owner@sunrise.com"

        notifier.send_verification_code.assert_awaited_once()
        assert notifier.send_verification_code.await_args.args[0] == "owner@sunrise.com"

    @pytest.mark.asyncio
    async def test_duplicate_clinic_name(self, onboarding):
        await create_clinic(onboarding)

        with pytest.raises(ConflictError, match="already exists"):
            await create_clinic(onboarding, name="SUNRISE clinic", email="other@x.com")

    @pytest.mark.asyncio
    async def test_invalid_input_creates_nothing(self, onboarding, registry):
        with pytest.raises(InvalidInputError):
            await onboarding.create_clinic("Sunrise Clinic", "owner", "owner@sunrise.com", "weak")

        assert await registry.list_active() == []

    @pytest.mark.asyncio
    async def test_provisioning_failure_removes_registry_record(self, onboarding, registry, store_service):
        with patch.object(
            store_service, "provision", AsyncMock(side_effect=TenantConnectionError("x", "connection refused"))
        ):
            with pytest.raises(TenantConnectionError):
                await create_clinic(onboarding)

        with pytest.raises(NotFoundError):
            await registry.find_by_slug("sunrise_clinic")

    @pytest.mark.asyncio
    async def test_failed_admin_write_releases_store(self, onboarding, registry, store_service):
        with patch.object(store_service, "provision", wraps=store_service.provision) as provision, patch.object(
            onboarding, "_create_user", AsyncMock(side_effect=RuntimeError("disk full"))
        ):
            with pytest.raises(RuntimeError, match="disk full"):
                await create_clinic(onboarding)

        locator = provision.await_args.args[0]
        assert locator not in store_service.connection_cache
        assert locator not in store_service.model_factory
        with pytest.raises(NotFoundError):
            await registry.find_by_slug("sunrise_clinic")

    @pytest.mark.asyncio
    async def test_rollback_error_does_not_hide_provisioning_error(self, onboarding, registry, store_service):
        with patch.object(
            store_service, "provision", AsyncMock(side_effect=TenantConnectionError("x", "connection refused"))
        ), patch.object(registry, "discard_tenant", AsyncMock(side_effect=RuntimeError("registry down"))):
            with pytest.raises(TenantConnectionError):
                await create_clinic(onboarding)

        # Same name can be registered once the store is reachable again
        result = await create_clinic(onboarding)
        assert result.clinic["slug"] == "sunrise_clinic"

    @pytest.mark.asyncio
    async def test_failed_notification_does_not_fail_signup(self, onboarding, notifier):
        notifier.send_verification_code.return_value = False

        result = await create_clinic(onboarding)

        assert result.token


@pytest.mark.unit
class TestJoinClinic:
    """Doctor and patient signup with a join code"""

    @pytest.mark.asyncio
    async def test_patient_joins_clinic_store(self, onboarding, token_service, store_service):
        clinic = await create_clinic(onboarding)

        result = await join(onboarding, clinic, "pat@x.com", profile={"blood_group": "O+", "gender": None})

        locator = clinic.clinic["store_locator"]
        assert result.user["store_locator"] == locator
        assert result.user["role"] == "patient"
        assert "join_code" not in result.clinic
        assert token_service.decode_token(result.token).store_locator == locator

        store = await store_service.resolve(locator)
        detail = await store.entities.PatientDetail.find_one(user_id=result.user["id"])
        assert detail.blood_group == "O+"
        assert await store.entities.EmailPreference.exists(user_id=result.user["id"])

    @pytest.mark.asyncio
    async def test_doctor_profile_ignores_unknown_fields(self, onboarding, store_service):
        clinic = await create_clinic(onboarding)

        result = await join(
            onboarding,
            clinic,
            "doc@x.com",
            role="doctor",
            profile={"specialization": "Cardiology", "experience": 7, "id": "forged", "unknown": 1},
        )

        store = await store_service.resolve(clinic.clinic["store_locator"])
        detail = await store.entities.DoctorDetail.find_one(user_id=result.user["id"])
        assert detail.specialization == "Cardiology"
        assert detail.experience == 7
        assert detail.id != "forged"

    @pytest.mark.asyncio
    async def test_join_code_is_case_insensitive(self, onboarding):
        clinic = await create_clinic(onboarding)

        result = await onboarding.join_clinic(
            f" {clinic.clinic['join_code'].lower()} ", "member", "pat@x.com", TEST_PASSWORD, "patient"
        )

        assert result.clinic["slug"] == "sunrise_clinic"

    @pytest.mark.asyncio
    async def test_unknown_code(self, onboarding):
        await create_clinic(onboarding)

        with pytest.raises(NotFoundError, match="Invalid clinic code"):
            await onboarding.join_clinic("NOPE00", "member", "pat@x.com", TEST_PASSWORD, "patient")

    @pytest.mark.asyncio
    async def test_clinic_admin_role_cannot_be_joined(self, onboarding):
        clinic = await create_clinic(onboarding)

        with pytest.raises(InvalidInputError):
            await join(onboarding, clinic, "pat@x.com", role="clinic_admin")

    @pytest.mark.asyncio
    async def test_email_unique_within_clinic_only(self, onboarding, store_service):
        """The same address may belong to independent users of different clinics"""
        sunrise = await create_clinic(onboarding)
        moonlight = await create_clinic(onboarding, name="Moonlight Clinic", email="owner@moonlight.com")

        first = await join(onboarding, sunrise, "shared@x.com")
        second = await join(onboarding, moonlight, "shared@x.com", role="doctor")

        assert first.user["store_locator"] != second.user["store_locator"]
        with pytest.raises(ConflictError, match="Email already in use"):
            await join(onboarding, sunrise, "SHARED@x.com", role="doctor")

        sunrise_store = await store_service.resolve(sunrise.clinic["store_locator"])
        moonlight_store = await store_service.resolve(moonlight.clinic["store_locator"])
        assert await sunrise_store.entities.User.count() == 2
        assert await moonlight_store.entities.User.count() == 2
        assert await sunrise_store.entities.User.get(second.user["id"]) is None

    @pytest.mark.asyncio
    async def test_failed_detail_write_leaves_no_user(self, onboarding, store_service):
        clinic = await create_clinic(onboarding)

        with patch(
            "tenantcare.services.onboarding_service._detail_values", side_effect=RuntimeError("detail write failed")
        ):
            with pytest.raises(RuntimeError):
                await join(onboarding, clinic, "pat@x.com")

        store = await store_service.resolve(clinic.clinic["store_locator"])
        assert not await store.entities.User.exists(email="pat@x.com")

        result = await join(onboarding, clinic, "pat@x.com")

        assert await store.entities.User.count(email="pat@x.com") == 1
        assert await store.entities.PatientDetail.exists(user_id=result.user["id"])


@pytest.mark.unit
class TestEmailVerification:
    @pytest.mark.asyncio
    async def test_patient_becomes_verified(self, onboarding, notifier):
        clinic = await create_clinic(onboarding)
        signup = await join(onboarding, clinic, "pat@x.com")

        result = await verify(onboarding, notifier, signup)

        assert result.user["verification_status"] == "verified"
        assert result.message == "Email verified successfully"

    @pytest.mark.asyncio
    async def test_doctor_goes_under_review(self, onboarding, notifier):
        clinic = await create_clinic(onboarding)
        signup = await join(onboarding, clinic, "doc@x.com", role="doctor")

        result = await verify(onboarding, notifier, signup)

        assert result.user["verification_status"] == "under_review"

    @pytest.mark.asyncio
    async def test_wrong_code(self, onboarding, notifier):
        clinic = await create_clinic(onboarding)
        code = last_code(notifier)
        wrong = "111111" if code != "111111" else "222222"

        with pytest.raises(InvalidInputError, match="Invalid verification code"):
            await onboarding.verify_email("owner@sunrise.com", wrong, clinic_code=clinic.clinic["join_code"])

    @pytest.mark.asyncio
    async def test_expired_code(self, onboarding, notifier, store_service):
        clinic = await create_clinic(onboarding)
        store = await store_service.resolve(clinic.clinic["store_locator"])
        await store.entities.User.update(
            clinic.user["id"], otp_expires=datetime.now(timezone.utc) - timedelta(minutes=1)
        )

        with pytest.raises(InvalidInputError, match="expired"):
            await onboarding.verify_email("owner@sunrise.com", last_code(notifier))

    @pytest.mark.asyncio
    async def test_unknown_member(self, onboarding):
        await create_clinic(onboarding)

        with pytest.raises(NotFoundError, match="User not found"):
            await onboarding.verify_email("ghost@x.com", "123456")

    @pytest.mark.asyncio
    async def test_resend_replaces_code(self, onboarding, notifier, store_service):
        clinic = await create_clinic(onboarding)

        sent = await onboarding.resend_verification_code("owner@sunrise.com", clinic_code=clinic.clinic["join_code"])

        assert sent is True
        assert notifier.send_verification_code.await_count == 2
        store = await store_service.resolve(clinic.clinic["store_locator"])
        user = await store.entities.User.get(clinic.user["id"])
        assert user.otp == last_code(notifier)

        result = await onboarding.verify_email("owner@sunrise.com", last_code(notifier))
        assert result.user["verification_status"] == "verified"

    @pytest.mark.asyncio
    async def test_resend_after_verification_rejected(self, onboarding, notifier):
        clinic = await create_clinic(onboarding)
        await verify(onboarding, notifier, clinic)

        with pytest.raises(InvalidInputError, match="already verified"):
            await onboarding.resend_verification_code("owner@sunrise.com")


@pytest.mark.unit
class TestLogin:
    """Login with and without a clinic code"""

    @pytest.mark.asyncio
    async def test_unverified_user_forbidden(self, onboarding):
        await create_clinic(onboarding)

        with pytest.raises(ForbiddenError, match="Email not verified"):
            await onboarding.login("owner@sunrise.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_scan_finds_member_clinic(self, onboarding, notifier, token_service):
        await create_clinic(onboarding)
        moonlight = await create_clinic(onboarding, name="Moonlight Clinic", email="owner@moonlight.com")
        signup = await join(onboarding, moonlight, "pat@x.com")
        await verify(onboarding, notifier, signup)

        result = await onboarding.login("PAT@x.com", TEST_PASSWORD)

        locator = moonlight.clinic["store_locator"]
        assert result.user["id"] == signup.user["id"]
        assert result.clinic["slug"] == "moonlight_clinic"
        assert token_service.decode_token(result.token).store_locator == locator

    @pytest.mark.asyncio
    async def test_clinic_code_selects_clinic(self, onboarding, notifier):
        sunrise = await create_clinic(onboarding)
        moonlight = await create_clinic(onboarding, name="Moonlight Clinic", email="owner@moonlight.com")
        for clinic in (sunrise, moonlight):
            signup = await join(onboarding, clinic, "shared@x.com")
            await verify(onboarding, notifier, signup)

        result = await onboarding.login("shared@x.com", TEST_PASSWORD, clinic_code=moonlight.clinic["join_code"])

        assert result.user["store_locator"] == moonlight.clinic["store_locator"]

    @pytest.mark.asyncio
    async def test_clinic_admin_sees_join_code(self, onboarding, notifier):
        clinic = await create_clinic(onboarding)
        await verify(onboarding, notifier, clinic)

        result = await onboarding.login("owner@sunrise.com", TEST_PASSWORD)

        assert result.clinic["join_code"] == clinic.clinic["join_code"]

    @pytest.mark.asyncio
    async def test_wrong_password(self, onboarding, notifier):
        clinic = await create_clinic(onboarding)
        await verify(onboarding, notifier, clinic)

        with pytest.raises(UnauthenticatedError, match="Invalid credentials"):
            await onboarding.login("owner@sunrise.com", "Wrong1234")
        with pytest.raises(UnauthenticatedError):
            await onboarding.login("nobody@sunrise.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_scan_skips_unreachable_clinic(self, onboarding, notifier, store_service):
        sunrise = await create_clinic(onboarding)
        moonlight = await create_clinic(onboarding, name="Moonlight Clinic", email="owner@moonlight.com")
        await verify(onboarding, notifier, moonlight)
        broken = sunrise.clinic["store_locator"]
        resolve = store_service.resolve

        async def flaky_resolve(locator):
            if locator == broken:
                raise TenantConnectionError(locator, "connection refused")
            return await resolve(locator)

        with patch.object(store_service, "resolve", side_effect=flaky_resolve):
            result = await onboarding.login("owner@moonlight.com", TEST_PASSWORD)
            with pytest.raises(TenantConnectionError):
                await onboarding.login("owner@sunrise.com", TEST_PASSWORD, clinic_code=sunrise.clinic["join_code"])

        assert result.clinic["slug"] == "moonlight_clinic"

    @pytest.mark.asyncio
    async def test_deactivated_clinic_not_scanned(self, onboarding, notifier, registry):
        clinic = await create_clinic(onboarding)
        await verify(onboarding, notifier, clinic)
        await registry.deactivate(clinic.clinic["slug"])

        with pytest.raises(UnauthenticatedError):
            await onboarding.login("owner@sunrise.com", TEST_PASSWORD)


@pytest.mark.unit
class TestSuperAdminLogin:
    @pytest_asyncio.fixture
    async def super_admin(self, registry, settings, token_service):
        admin, _ = await registry.upsert_platform_admin(
            settings.SUPER_ADMIN_ID, settings.SUPER_ADMIN_EMAIL, token_service.get_password_hash(TEST_PASSWORD)
        )
        return admin

    @pytest.mark.asyncio
    async def test_without_clinic(self, onboarding, super_admin, settings, token_service):
        result = await onboarding.login(settings.SUPER_ADMIN_EMAIL, TEST_PASSWORD)

        claims = token_service.decode_token(result.token)
        assert claims.sub == settings.SUPER_ADMIN_ID
        assert claims.role == "admin"
        assert claims.store_locator == NO_TENANT_LOCATOR
        assert result.user["is_super_admin"] is True
        assert result.clinic is None

    @pytest.mark.asyncio
    async def test_with_clinic_code(self, onboarding, super_admin, settings, token_service):
        clinic = await create_clinic(onboarding)

        result = await onboarding.login(settings.SUPER_ADMIN_EMAIL, TEST_PASSWORD, clinic_code=clinic.clinic["join_code"])

        assert token_service.decode_token(result.token).store_locator == clinic.clinic["store_locator"]
        assert result.clinic["slug"] == "sunrise_clinic"

    @pytest.mark.asyncio
    async def test_wrong_password_falls_through(self, onboarding, super_admin, settings):
        with pytest.raises(UnauthenticatedError):
            await onboarding.login(settings.SUPER_ADMIN_EMAIL, "Wrong1234")
