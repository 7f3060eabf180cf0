"""
Validation of signup and login input.

All helpers raise InvalidInputError with a message suitable for the client.
"""

import re

from email_validator import EmailNotValidError, validate_email

from tenantcare.core.exceptions import InvalidInputError
from tenantcare.models.db.registry import CLINIC_NAME_MAX_LENGTH

JOINABLE_ROLES = ("doctor", "patient")

_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,30}$")
_OTP_PATTERN = re.compile(r"^\d{6}$")


def normalize_email(email: str | None) -> str:
    """Validated, lowercased email address."""
    if not email or not email.strip():
        raise InvalidInputError("Email is required")
    try:
        result = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise InvalidInputError("Invalid email format") from e
    return result.normalized.lower()


def validate_password(password: str | None) -> str:
    if not password or len(password) < 8:
        raise InvalidInputError("Password must be at least 8 characters long")
    if not (re.search(r"[a-z]", password) and re.search(r"[A-Z]", password) and re.search(r"\d", password)):
        raise InvalidInputError("Password must contain an uppercase letter, a lowercase letter and a number")
    return password


def validate_username(username: str | None) -> str:
    username = (username or "").strip()
    if not _USERNAME_PATTERN.match(username):
        raise InvalidInputError(
            "Username must be 3-30 characters and contain only letters, numbers, underscores and hyphens"
        )
    return username


def validate_join_role(role: str | None) -> str:
    if role not in JOINABLE_ROLES:
        raise InvalidInputError("Role must be either 'patient' or 'doctor'")
    return role


def validate_clinic_name(name: str | None) -> str:
    name = (name or "").strip()
    if len(name) < 2:
        raise InvalidInputError("Clinic name must be at least 2 characters long")
    if len(name) > CLINIC_NAME_MAX_LENGTH:
        raise InvalidInputError(f"Clinic name must be at most {CLINIC_NAME_MAX_LENGTH} characters long")
    return name


def validate_otp(code: str | None) -> str:
    code = (code or "").strip()
    if not _OTP_PATTERN.match(code):
        raise InvalidInputError("Verification code must be 6 digits")
    return code
