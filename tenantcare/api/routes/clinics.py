from fastapi import APIRouter, Depends, Query

from tenantcare.api.dependencies import get_clinic_service, get_registry, get_tenant_context, require_super_admin
from tenantcare.api.schemas.clinics import (
    ClinicProfileResponse,
    ClinicProfileUpdate,
    ClinicSearchResponse,
    ClinicStatusResponse,
    ClinicSummary,
)
from tenantcare.core.tenancy import ClinicRegistry, TenantContext
from tenantcare.services import ClinicService

# Public discovery and platform administration, mounted at /clinics
router = APIRouter()

# The caller's own clinic, mounted at /clinic
profile_router = APIRouter()


@router.get("/search", response_model=ClinicSearchResponse)
async def search_clinics(
    q: str = Query("", max_length=100),
    clinics: ClinicService = Depends(get_clinic_service),  # noqa: B008
):
    """Search active clinics by name (no authentication)."""
    return {"clinics": await clinics.search(q)}


@router.get("/code/{code}", response_model=ClinicSummary)
async def get_clinic_by_code(
    code: str,
    clinics: ClinicService = Depends(get_clinic_service),  # noqa: B008
):
    """Clinic behind a join code, shown to members before they sign up."""
    return await clinics.get_by_code(code)


@router.post("/{slug}/deactivate", response_model=ClinicStatusResponse)
async def deactivate_clinic(
    slug: str,
    _: TenantContext = Depends(require_super_admin),  # noqa: B008
    registry: ClinicRegistry = Depends(get_registry),  # noqa: B008
):
    record = await registry.deactivate(slug)
    return {"clinic": record.to_public_dict(), "is_active": record.is_active}


@profile_router.get("/profile", response_model=ClinicProfileResponse)
async def get_clinic_profile(
    context: TenantContext = Depends(get_tenant_context),  # noqa: B008
    clinics: ClinicService = Depends(get_clinic_service),  # noqa: B008
):
    profile = await clinics.get_profile(context)
    return {"clinic": profile.to_dict()}


@profile_router.put("/profile", response_model=ClinicProfileResponse)
async def update_clinic_profile(
    data: ClinicProfileUpdate,
    context: TenantContext = Depends(get_tenant_context),  # noqa: B008
    clinics: ClinicService = Depends(get_clinic_service),  # noqa: B008
):
    profile = await clinics.update_profile(context, data.model_dump(exclude_unset=True))
    return {"clinic": profile.to_dict()}
