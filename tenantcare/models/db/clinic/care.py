"""
Clinical records: appointments, medications, records, reports and metrics.
"""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from ..base import EntityMixin, JSONValue, TenantBase, utcnow


class Appointment(TenantBase, EntityMixin):
    __tablename__ = "appointments"

    patient_id = Column(String(36), nullable=False, index=True)
    doctor_id = Column(String(36), nullable=False, index=True)
    date = Column(String(10), nullable=False, comment="YYYY-MM-DD")
    time = Column(String(10), nullable=False)
    reason = Column(String(200), nullable=False)
    notes = Column(Text, default="", nullable=False)
    status = Column(
        String(20),
        default="pending",
        nullable=False,
        comment="pending | confirmed | rejected | completed | cancelled",
    )
    rating = Column(Integer, nullable=True)
    feedback = Column(Text, default="", nullable=False)
    rated = Column(Boolean, default=False, nullable=False)


class Medication(TenantBase, EntityMixin):
    __tablename__ = "medications"

    patient_id = Column(String(36), nullable=False, index=True)
    doctor_id = Column(String(36), nullable=True)
    name = Column(String(255), nullable=False)
    dosage = Column(String(100), nullable=False)
    frequency = Column(String(100), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, default="", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class MedicalRecord(TenantBase, EntityMixin):
    __tablename__ = "medical_records"

    patient_id = Column(String(36), nullable=False, index=True)
    doctor_id = Column(String(36), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="", nullable=False)
    file_url = Column(String(500), nullable=True)
    file_type = Column(String(50), nullable=True)
    record_type = Column(String(50), default="general", nullable=False)


class Report(TenantBase, EntityMixin):
    __tablename__ = "reports"

    patient_id = Column(String(36), nullable=False, index=True)
    doctor_id = Column(String(36), nullable=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, default="", nullable=False)
    file_url = Column(String(500), nullable=True)
    report_type = Column(String(50), default="general", nullable=False)


class HealthMetric(TenantBase, EntityMixin):
    """A single measurement; `value` may be a number, string or a map (e.g. blood pressure)."""

    __tablename__ = "health_metrics"

    patient_id = Column(String(36), nullable=False)
    type = Column(String(50), nullable=False)
    value = Column(JSONValue, nullable=False)
    unit = Column(String(20), nullable=True)
    recorded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    notes = Column(Text, default="", nullable=False)

    __table_args__ = (Index("idx_health_metrics_patient_type", "patient_id", "type"),)
