from .clinic_service import ClinicService
from .notification_service import (
    LoggingNotificationService,
    NotificationService,
    WebhookNotificationService,
    create_notification_service,
)
from .onboarding_service import AuthResult, OnboardingService
from .token_service import TokenService

__all__ = [
    "AuthResult",
    "ClinicService",
    "LoggingNotificationService",
    "NotificationService",
    "OnboardingService",
    "TokenService",
    "WebhookNotificationService",
    "create_notification_service",
]
