# ============================================================================
# SCOPE: MULTI-TENANT
# Description: Clinic creation, clinic join, login and email verification.
# Tenant-Aware: Yes - every path ends with a token pinned to one clinic store.
# ============================================================================
"""
OnboardingService - the flows that decide which clinic a caller belongs to.

- create_clinic: clinic admin signup. Registers the clinic, provisions its
  store and creates the admin user and clinic profile inside it.
- join_clinic: doctor/patient signup with a clinic join code.
- login: with a clinic code (direct) or without one (scan of active clinics).
- verify_email / resend_verification_code: 6-digit email codes.

Every successful path returns a token carrying the clinic's store locator,
so later requests are routed without touching the registry.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from tenantcare.config.settings import Settings
from tenantcare.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    TenantConnectionError,
    UnauthenticatedError,
)
from tenantcare.core.tenancy.registry import ClinicRegistry
from tenantcare.core.tenancy.store_service import TenantStore, TenantStoreService
from tenantcare.models.auth import NO_TENANT_LOCATOR
from tenantcare.models.db.clinic import User
from tenantcare.models.db.registry import TenantRecord

from .notification_service import NotificationService
from .token_service import TokenService
from .validation import (
    normalize_email,
    validate_clinic_name,
    validate_join_role,
    validate_otp,
    validate_password,
    validate_username,
)

logger = logging.getLogger(__name__)

CLINIC_ADMIN_ROLE = "clinic_admin"
SUPER_ADMIN_ROLE = "admin"


@dataclass
class AuthResult:
    """Token plus the public view of the caller and its clinic."""

    token: str
    user: Dict[str, Any]
    clinic: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"token": self.token, "user": self.user, "clinic": self.clinic}
        if self.message:
            data["message"] = self.message
        data.update(self.extra)
        return data


def generate_otp() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _detail_values(model: type, profile: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    columns = model.__table__.columns.keys()
    return {
        key: value
        for key, value in (profile or {}).items()
        if value is not None and key in columns and key not in ("id", "user_id")
    }


def clinic_summary(record: TenantRecord, include_join_code: bool = False) -> Dict[str, Any]:
    data = record.to_public_dict()
    data["store_locator"] = record.store_locator
    if include_join_code:
        data["join_code"] = record.join_code
    return data


class OnboardingService:
    def __init__(
        self,
        registry: ClinicRegistry,
        store_service: TenantStoreService,
        token_service: TokenService,
        notifier: NotificationService,
        settings: Settings,
    ):
        self.registry = registry
        self.store_service = store_service
        self.token_service = token_service
        self.notifier = notifier
        self.settings = settings

    # =========================================================================
    # Signup
    # =========================================================================

    async def create_clinic(self, clinic_name: str, username: str, email: str, password: str) -> AuthResult:
        """
        Register a new clinic and its administrator.

        The clinic store is provisioned and written to before the token is
        issued, so a clinic is never visible to joiners without a working store.

        Raises:
            InvalidInputError: Bad clinic name, username, email or password.
            ConflictError: Clinic name or admin email already registered.
            TenantConnectionError / SchemaBindingError: Store could not be provisioned.
        """
        clinic_name = validate_clinic_name(clinic_name)
        username = validate_username(username)
        email = normalize_email(email)
        validate_password(password)

        record = await self.registry.create_tenant(clinic_name, email)
        try:
            store = await self.store_service.provision(record.store_locator)
            user, otp = await self._create_user(store, username, email, password, CLINIC_ADMIN_ROLE)
            await store.entities.ClinicProfile.create(clinic_name=clinic_name, email=email, is_singleton=True)
        except Exception:
            logger.error(f"Provisioning failed for clinic {record.slug}, removing registry record")
            await self._rollback_clinic(record)
            raise

        await self._send_code(email, otp, user.id)
        logger.info(f"Clinic created: {record.slug} ({record.store_locator}) by {email}")
        return AuthResult(
            token=self._issue_token(user, record.store_locator),
            user=self._public_user(user, record.store_locator),
            clinic=clinic_summary(record, include_join_code=True),
            message="Clinic created. Check your email for the verification code.",
        )

    async def _rollback_clinic(self, record: TenantRecord) -> None:
        try:
            await self.registry.discard_tenant(record.tenant_id)
        except Exception as e:
            logger.error(f"Could not remove registry record of clinic {record.slug}: {e}")
        await self.store_service.discard(record.store_locator)

    async def join_clinic(
        self,
        clinic_code: str,
        username: str,
        email: str,
        password: str,
        role: str,
        profile: Optional[Dict[str, Any]] = None,
    ) -> AuthResult:
        """
        Sign up a doctor or patient into the clinic owning `clinic_code`.

        Email uniqueness is checked inside that clinic only.

        Raises:
            InvalidInputError: Bad username, email, password or role.
            NotFoundError: Unknown or inactive clinic code.
            ConflictError: Email already used in this clinic.
        """
        role = validate_join_role(role)
        username = validate_username(username)
        email = normalize_email(email)
        validate_password(password)

        record = await self.registry.find_by_join_code(clinic_code)
        store = await self.store_service.resolve(record.store_locator)

        if await store.entities.User.exists(email=email):
            raise ConflictError("Email already in use", field="email")

        values, otp = self._user_values(username, email, password, role)
        detail_model = store.entities.DoctorDetail.model if role == "doctor" else store.entities.PatientDetail.model
        user = store.entities.User.model(**values)
        # User, role detail and email preferences commit together or not at all
        async with store.entities.User.session() as session:
            session.add(user)
            await session.flush()
            session.add(detail_model(user_id=user.id, **_detail_values(detail_model, profile)))
            session.add(store.entities.EmailPreference.model(user_id=user.id))
            await session.flush()
            await session.refresh(user)

        await self._send_code(email, otp, user.id)
        logger.info(f"{role} {email} joined clinic {record.slug}")
        return AuthResult(
            token=self._issue_token(user, record.store_locator),
            user=self._public_user(user, record.store_locator),
            clinic=clinic_summary(record),
            message="Signup successful. Check your email for the verification code.",
        )

    def _user_values(self, username: str, email: str, password: str, role: str) -> tuple[Dict[str, Any], str]:
        otp = generate_otp()
        values = {
            "username": username,
            "email": email,
            "password_hash": self.token_service.get_password_hash(password),
            "role": role,
            "verification_status": "pending",
            "otp": otp,
            "otp_expires": datetime.now(timezone.utc) + timedelta(minutes=self.settings.OTP_EXPIRE_MINUTES),
        }
        return values, otp

    async def _create_user(
        self, store: TenantStore, username: str, email: str, password: str, role: str
    ) -> tuple[User, str]:
        values, otp = self._user_values(username, email, password, role)
        return await store.entities.User.create(**values), otp

    async def _send_code(self, email: str, otp: str, user_ref: str) -> bool:
        delivered = await self.notifier.send_verification_code(email, otp, user_ref)
        if not delivered:
            logger.error(f"Failed to send verification code to {email}")
        return delivered

    # =========================================================================
    # Login
    # =========================================================================

    async def login(self, email: str, password: str, clinic_code: Optional[str] = None) -> AuthResult:
        """
        Authenticate a caller.

        With `clinic_code` only that clinic is searched. Without it every
        active clinic is scanned in creation order; the first clinic holding
        a user with matching email and password wins.

        Raises:
            UnauthenticatedError: No matching credentials.
            ForbiddenError: Email not verified yet.
            NotFoundError: Unknown clinic code.
        """
        email = normalize_email(email)
        if not password:
            raise InvalidInputError("Password is required")

        admin_result = await self._login_super_admin(email, password, clinic_code)
        if admin_result is not None:
            return admin_result

        records = await self._candidate_clinics(clinic_code)
        for record in records:
            store = await self._open_store(record, strict=clinic_code is not None)
            if store is None:
                continue
            user = await store.entities.User.find_one(email=email)
            if user is None or not self.token_service.verify_password(password, user.password_hash):
                continue
            if user.verification_status == "pending":
                raise ForbiddenError("Email not verified. Please verify your email.")

            user = await store.entities.User.update(user.id, last_seen=datetime.now(timezone.utc)) or user
            logger.info(f"Login: {email} -> clinic {record.slug}")
            return AuthResult(
                token=self._issue_token(user, record.store_locator),
                user=self._public_user(user, record.store_locator),
                clinic=clinic_summary(record, include_join_code=user.role == CLINIC_ADMIN_ROLE),
            )

        raise UnauthenticatedError("Invalid credentials")

    async def _login_super_admin(self, email: str, password: str, clinic_code: Optional[str]) -> Optional[AuthResult]:
        admin = await self.registry.get_platform_admin(email)
        if admin is None or not self.token_service.verify_password(password, admin.password_hash):
            return None

        record = await self.registry.find_by_join_code(clinic_code) if clinic_code else None
        locator = record.store_locator if record else NO_TENANT_LOCATOR
        token = self.token_service.create_access_token(
            user_id=self.settings.SUPER_ADMIN_ID,
            role=SUPER_ADMIN_ROLE,
            store_locator=locator,
            email=admin.email,
        )
        logger.info(f"Super-admin login (clinic: {locator})")
        return AuthResult(
            token=token,
            user={
                "id": self.settings.SUPER_ADMIN_ID,
                "email": admin.email,
                "username": admin.username,
                "role": SUPER_ADMIN_ROLE,
                "is_super_admin": True,
                "store_locator": locator,
            },
            clinic=clinic_summary(record, include_join_code=True) if record else None,
        )

    async def _candidate_clinics(
        self, clinic_code: Optional[str] = None, store_locator: Optional[str] = None
    ) -> List[TenantRecord]:
        if clinic_code:
            return [await self.registry.find_by_join_code(clinic_code)]
        if store_locator:
            return [await self.registry.find_by_locator(store_locator)]
        return list(await self.registry.list_active())

    async def _open_store(self, record: TenantRecord, strict: bool) -> Optional[TenantStore]:
        try:
            return await self.store_service.resolve(record.store_locator)
        except TenantConnectionError as e:
            if strict:
                raise
            logger.warning(f"Skipping unreachable clinic {record.slug} during login scan: {e}")
            return None

    # =========================================================================
    # Email verification
    # =========================================================================

    async def verify_email(
        self,
        email: str,
        code: str,
        clinic_code: Optional[str] = None,
        store_locator: Optional[str] = None,
    ) -> AuthResult:
        """
        Check a verification code and activate the user.

        Doctors move to `under_review` (an admin still has to approve them);
        everyone else becomes `verified`.
        """
        email = normalize_email(email)
        code = validate_otp(code)

        record, store, user = await self._find_member(email, clinic_code, store_locator)
        if user.otp != code:
            raise InvalidInputError("Invalid verification code")
        if user.otp_expires is None or _as_utc(user.otp_expires) < datetime.now(timezone.utc):
            raise InvalidInputError("Verification code expired")

        status = "under_review" if user.role == "doctor" else "verified"
        user = await store.entities.User.update(user.id, otp=None, otp_expires=None, verification_status=status)
        logger.info(f"Email verified: {email} in clinic {record.slug} ({status})")
        return AuthResult(
            token=self._issue_token(user, record.store_locator),
            user=self._public_user(user, record.store_locator),
            clinic=clinic_summary(record, include_join_code=user.role == CLINIC_ADMIN_ROLE),
            message="Email verified successfully",
        )

    async def resend_verification_code(
        self,
        email: str,
        clinic_code: Optional[str] = None,
        store_locator: Optional[str] = None,
    ) -> bool:
        email = normalize_email(email)
        _, store, user = await self._find_member(email, clinic_code, store_locator)
        if user.verification_status != "pending":
            raise InvalidInputError("Email is already verified")

        otp = generate_otp()
        await store.entities.User.update(
            user.id,
            otp=otp,
            otp_expires=datetime.now(timezone.utc) + timedelta(minutes=self.settings.OTP_EXPIRE_MINUTES),
        )
        return await self._send_code(email, otp, user.id)

    async def _find_member(
        self, email: str, clinic_code: Optional[str], store_locator: Optional[str]
    ) -> tuple[TenantRecord, TenantStore, User]:
        strict = bool(clinic_code or store_locator)
        for record in await self._candidate_clinics(clinic_code, store_locator):
            store = await self._open_store(record, strict=strict)
            if store is None:
                continue
            user = await store.entities.User.find_one(email=email)
            if user is not None:
                return record, store, user
        raise NotFoundError("User not found")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _issue_token(self, user: User, store_locator: str) -> str:
        return self.token_service.create_access_token(
            user_id=user.id,
            role=user.role,
            store_locator=store_locator,
            email=user.email,
        )

    @staticmethod
    def _public_user(user: User, store_locator: str) -> Dict[str, Any]:
        data = user.to_dict()
        data["store_locator"] = store_locator
        return data
