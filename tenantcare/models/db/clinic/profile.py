from sqlalchemy import Boolean, Column, String, Text

from ..base import EntityMixin, TenantBase


class ClinicProfile(TenantBase, EntityMixin):
    """Singleton profile of the clinic owning this database (unique is_singleton row)."""

    __tablename__ = "clinic_profile"

    clinic_name = Column(String(255), nullable=False)
    clinic_logo_url = Column(String(500), nullable=True)
    address = Column(Text, default="", nullable=False)
    city = Column(String(100), default="", nullable=False)
    state = Column(String(100), default="", nullable=False)
    zip_code = Column(String(20), default="", nullable=False)
    phone = Column(String(50), default="", nullable=False)
    email = Column(String(255), default="", nullable=False)
    website = Column(String(255), default="", nullable=False)
    tax_id = Column(String(50), default="", nullable=False)
    description = Column(Text, default="", nullable=False)
    is_singleton = Column(Boolean, default=True, unique=True, nullable=False)
    setup_complete = Column(Boolean, default=False, nullable=False)
