from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import Optional

from loguru import logger
from twilio.rest import Client

from ..database import settings


@dataclass
class SmsNotification:
    to: str
    body: str


def normalize_phone_number(phone: str) -> str:
    """
    Normalize a phone number to E.164 for Twilio.

    Examples:
        "+1-555-0199" -> "+15550199"
        "+1 (555) 123-4567" -> "+15551234567"
        "555 123 4567" -> "+5551234567"
    """
    if not phone:
        return phone
    digits = re.sub(r"\D", "", phone)
    return f"+{digits}"


class SmsService:
    def __init__(self, client: Optional[Client] = None) -> None:
        if client is not None:
            self.client: Optional[Client] = client
        elif not settings.twilio_sid or not settings.twilio_token:
            logger.warning("Twilio credentials missing; SMS alerts will be mocked.")
            self.client = None
        else:
            self.client = Client(settings.twilio_sid, settings.twilio_token)
        self.sender_phone = settings.twilio_phone or "+1234567890"

    async def send_sms(self, message: SmsNotification) -> bool:
        """Deliver one SMS. Returns False when delivery failed; never raises."""
        normalized_phone = normalize_phone_number(message.to)

        if self.client is None:
            logger.info("Mock SMS: {} -> {}", normalized_phone, message.body)
            return True
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                lambda: self.client.messages.create(
                    to=normalized_phone,
                    from_=self.sender_phone,
                    body=message.body,
                ),
            )
            logger.info("SMS sent to {} (normalized from {})", normalized_phone, message.to)
            return True
        except Exception as exc:
            logger.warning(
                "SMS delivery failed for {} (normalized: {}): {}. Continuing with remaining alerts.",
                message.to,
                normalized_phone,
                exc,
            )
            return False


sms_service = SmsService()


def get_sms_service() -> SmsService:
    return sms_service
