from datetime import date
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class ClinicSignupRequest(BaseModel):
    """Clinic admin signup: creates the clinic and its first user."""

    clinic_name: str = Field(..., min_length=1, max_length=255)
    username: str
    email: str
    password: str


class JoinSignupRequest(BaseModel):
    """Doctor or patient signup into an existing clinic."""

    clinic_code: str = Field(..., min_length=1, max_length=12)
    username: str
    email: str
    password: str
    role: Literal["doctor", "patient"]

    # Doctor profile
    specialization: Optional[str] = None
    qualification: Optional[str] = None
    license_number: Optional[str] = None
    experience: Optional[int] = Field(None, ge=0)

    # Patient profile
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None

    def profile(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"clinic_code", "username", "email", "password", "role"}, exclude_none=True)


class LoginRequest(BaseModel):
    email: str
    password: str
    clinic_code: Optional[str] = None


class VerifyEmailRequest(BaseModel):
    email: str
    code: str
    clinic_code: Optional[str] = None
    store_locator: Optional[str] = None


class ResendCodeRequest(BaseModel):
    email: str
    clinic_code: Optional[str] = None
    store_locator: Optional[str] = None


class AuthResponse(BaseModel):
    token: str
    user: Dict[str, Any]
    clinic: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


class MeResponse(BaseModel):
    user: Dict[str, Any]
    store_locator: str
    has_clinic: bool
