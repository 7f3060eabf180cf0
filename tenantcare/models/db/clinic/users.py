"""
Clinic members and their per-user detail records.
"""

from sqlalchemy import Boolean, Column, Date, DateTime, Float, Integer, String, Text

from ..base import EntityMixin, JSONValue, TenantBase, utcnow

USER_ROLES = ("patient", "doctor", "admin", "clinic_admin")
VERIFICATION_STATUSES = ("pending", "verified", "rejected", "under_review")


class User(TenantBase, EntityMixin):
    """
    Member of a clinic (patient, doctor or administrator).

    Email is unique inside one clinic database only; the same address can
    belong to independent users in different clinics.
    """

    __tablename__ = "users"
    __private_fields__ = ("password_hash", "otp", "otp_expires")

    username = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, comment="patient | doctor | admin | clinic_admin")
    profile_pic_url = Column(String(500), nullable=True)
    profile_completed = Column(Boolean, default=False, nullable=False)
    verification_status = Column(String(20), default="pending", nullable=False)
    otp = Column(String(12), nullable=True)
    otp_expires = Column(DateTime(timezone=True), nullable=True)
    fcm_token = Column(String(500), nullable=True)
    fcm_platform = Column(String(20), nullable=True)
    fcm_device_id = Column(String(255), nullable=True)
    fcm_updated_at = Column(DateTime(timezone=True), nullable=True)
    is_online = Column(Boolean, default=False, nullable=False)
    last_seen = Column(DateTime(timezone=True), default=utcnow, nullable=True)


class DoctorDetail(TenantBase, EntityMixin):
    __tablename__ = "doctor_details"

    user_id = Column(String(36), unique=True, nullable=False, index=True)
    specialization = Column(String(255), nullable=True)
    qualification = Column(String(255), nullable=True)
    experience = Column(Integer, default=0, nullable=False)
    license_number = Column(String(100), nullable=True)
    hospital = Column(String(255), nullable=True)
    bio = Column(Text, default="", nullable=False)
    consultation_fee = Column(Float, default=0, nullable=False)
    available_days = Column(JSONValue, default=list, nullable=False)
    available_time = Column(String(100), nullable=True)
    rating = Column(Float, default=0, nullable=False)
    total_ratings = Column(Integer, default=0, nullable=False)


class PatientDetail(TenantBase, EntityMixin):
    __tablename__ = "patient_details"

    user_id = Column(String(36), unique=True, nullable=False, index=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    blood_group = Column(String(10), nullable=True)
    allergies = Column(JSONValue, default=list, nullable=False)
    emergency_contact = Column(String(255), nullable=True)
    address = Column(Text, default="", nullable=False)
    medical_history = Column(Text, default="", nullable=False)


class EmailPreference(TenantBase, EntityMixin):
    __tablename__ = "email_preferences"

    user_id = Column(String(36), unique=True, nullable=False, index=True)
    appointment_reminders = Column(Boolean, default=True, nullable=False)
    medication_reminders = Column(Boolean, default=True, nullable=False)
    announcements = Column(Boolean, default=True, nullable=False)
    newsletters = Column(Boolean, default=False, nullable=False)


class Settings(TenantBase, EntityMixin):
    """Per-user UI settings; `extra` holds arbitrary key/value preferences."""

    __tablename__ = "user_settings"

    user_id = Column(String(36), unique=True, nullable=False, index=True)
    theme = Column(String(20), default="light", nullable=False)
    language = Column(String(10), default="en", nullable=False)
    notifications = Column(Boolean, default=True, nullable=False)
    two_factor_auth = Column(Boolean, default=False, nullable=False)
    extra = Column(JSONValue, default=dict, nullable=False)
