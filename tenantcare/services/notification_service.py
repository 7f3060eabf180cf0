"""
Verification code delivery.

Onboarding hands codes to a NotificationService and only logs the outcome;
a failed delivery never fails a signup.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from tenantcare.config.settings import Settings

logger = logging.getLogger(__name__)


class NotificationService:
    """Interface for sending verification codes to users."""

    async def send_verification_code(self, email: str, code: str, user_ref: Optional[str] = None) -> bool:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class LoggingNotificationService(NotificationService):
    """Development sender: writes the code to the log instead of mailing it."""

    async def send_verification_code(self, email: str, code: str, user_ref: Optional[str] = None) -> bool:
        logger.info(f"Verification code for {email} (user {user_ref}): {code}")
        return True


class WebhookNotificationService(NotificationService):
    """
    Posts verification codes to an HTTP endpoint (mail relay, queue bridge).

    Payload: {"type": "verification_code", "email", "code", "user_ref"}.
    Never raises; returns False when the endpoint is unreachable or
    answers with a non-2xx status.
    """

    def __init__(self, url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.url, json=payload, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.url, json=payload)

    async def send_verification_code(self, email: str, code: str, user_ref: Optional[str] = None) -> bool:
        payload = {"type": "verification_code", "email": email, "code": code, "user_ref": user_ref}
        try:
            response = await self._post(payload)
        except httpx.TimeoutException:
            logger.error(f"Timeout sending verification code to {email}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Error sending verification code to {email}: {e}")
            return False

        if response.is_success:
            logger.info(f"Verification code sent to {email}")
            return True

        logger.error(f"Notification webhook answered {response.status_code} for {email}: {response.text[:200]}")
        return False

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


def create_notification_service(settings: Settings) -> NotificationService:
    if settings.NOTIFICATION_WEBHOOK_URL:
        return WebhookNotificationService(settings.NOTIFICATION_WEBHOOK_URL, timeout=settings.NOTIFICATION_TIMEOUT)
    return LoggingNotificationService()
