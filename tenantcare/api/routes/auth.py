import logging

from fastapi import APIRouter, Depends, status

from tenantcare.api.dependencies import get_onboarding_service, get_tenant_context
from tenantcare.api.schemas.auth import (
    AuthResponse,
    ClinicSignupRequest,
    JoinSignupRequest,
    LoginRequest,
    MeResponse,
    ResendCodeRequest,
    VerifyEmailRequest,
)
from tenantcare.core.tenancy import TenantContext
from tenantcare.services import OnboardingService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/clinics", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def create_clinic(
    data: ClinicSignupRequest,
    onboarding: OnboardingService = Depends(get_onboarding_service),  # noqa: B008
):
    """
    Clinic admin signup.

    Registers the clinic, creates its isolated store and the admin account.
    The response carries the clinic join code to hand out to members.
    """
    result = await onboarding.create_clinic(
        clinic_name=data.clinic_name,
        username=data.username,
        email=data.email,
        password=data.password,
    )
    return result.to_dict()


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def join_clinic(
    data: JoinSignupRequest,
    onboarding: OnboardingService = Depends(get_onboarding_service),  # noqa: B008
):
    """Doctor or patient signup with a clinic join code."""
    result = await onboarding.join_clinic(
        clinic_code=data.clinic_code,
        username=data.username,
        email=data.email,
        password=data.password,
        role=data.role,
        profile=data.profile(),
    )
    return result.to_dict()


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    onboarding: OnboardingService = Depends(get_onboarding_service),  # noqa: B008
):
    result = await onboarding.login(data.email, data.password, clinic_code=data.clinic_code)
    return result.to_dict()


@router.post("/verify-email", response_model=AuthResponse)
async def verify_email(
    data: VerifyEmailRequest,
    onboarding: OnboardingService = Depends(get_onboarding_service),  # noqa: B008
):
    result = await onboarding.verify_email(
        data.email,
        data.code,
        clinic_code=data.clinic_code,
        store_locator=data.store_locator,
    )
    return result.to_dict()


@router.post("/resend-code")
async def resend_code(
    data: ResendCodeRequest,
    onboarding: OnboardingService = Depends(get_onboarding_service),  # noqa: B008
):
    delivered = await onboarding.resend_verification_code(
        data.email,
        clinic_code=data.clinic_code,
        store_locator=data.store_locator,
    )
    return {"sent": delivered, "message": "Verification code sent" if delivered else "Verification code not sent"}


@router.get("/me", response_model=MeResponse)
async def me(context: TenantContext = Depends(get_tenant_context)):  # noqa: B008
    """Identity of the caller as resolved from its token."""
    return {
        "user": context.caller.to_dict(),
        "store_locator": context.store_locator,
        "has_clinic": context.has_tenant,
    }
