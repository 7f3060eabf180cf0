from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ClinicSummary(BaseModel):
    tenant_id: str
    display_name: str
    slug: str


class ClinicSearchResponse(BaseModel):
    clinics: List[ClinicSummary]


class ClinicProfileUpdate(BaseModel):
    """Partial update; omitted fields keep their value."""

    clinic_name: Optional[str] = Field(None, min_length=1, max_length=255)
    clinic_logo_url: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    tax_id: Optional[str] = None
    description: Optional[str] = None


class ClinicProfileResponse(BaseModel):
    clinic: Dict[str, Any]


class ClinicStatusResponse(BaseModel):
    clinic: Dict[str, Any]
    is_active: bool
