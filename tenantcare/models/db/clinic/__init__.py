"""
Clinic entity schema, shared by every tenant database.

ENTITY_MODELS is the closed list of logical entity names bound to each
tenant connection. Adding an entity means adding it here and bumping
SCHEMA_VERSION; the set is never tenant specific.
"""

from .care import Appointment, HealthMetric, MedicalRecord, Medication, Report
from .communication import ActivityLog, AiChatSession, Announcement, Call, Conversation, Message, Ticket
from .operations import Invoice, InventoryItem, PharmacyItem, PharmacyTransaction, ServiceItem
from .profile import ClinicProfile
from .users import USER_ROLES, VERIFICATION_STATUSES, DoctorDetail, EmailPreference, PatientDetail, Settings, User

SCHEMA_VERSION = 1

ENTITY_MODELS = {
    "User": User,
    "Appointment": Appointment,
    "Invoice": Invoice,
    "Medication": Medication,
    "MedicalRecord": MedicalRecord,
    "Report": Report,
    "Ticket": Ticket,
    "HealthMetric": HealthMetric,
    "PharmacyItem": PharmacyItem,
    "PharmacyTransaction": PharmacyTransaction,
    "InventoryItem": InventoryItem,
    "ServiceItem": ServiceItem,
    "ActivityLog": ActivityLog,
    "Announcement": Announcement,
    "Conversation": Conversation,
    "Message": Message,
    "Call": Call,
    "DoctorDetail": DoctorDetail,
    "PatientDetail": PatientDetail,
    "EmailPreference": EmailPreference,
    "Settings": Settings,
    "AiChatSession": AiChatSession,
    "ClinicProfile": ClinicProfile,
}

ENTITY_NAMES = tuple(ENTITY_MODELS)

__all__ = [
    "ENTITY_MODELS",
    "ENTITY_NAMES",
    "SCHEMA_VERSION",
    "USER_ROLES",
    "VERIFICATION_STATUSES",
    *ENTITY_NAMES,
]
