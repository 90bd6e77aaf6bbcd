"""Twilio integration for SMS."""

import asyncio
import logging
from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class SMSDeliveryError(Exception):
    """Raised when Twilio refuses or fails to send a message."""


class TwilioClient:
    """Client for Twilio SMS."""

    def __init__(self):
        self.client = Client(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN
        ) if settings.TWILIO_ACCOUNT_SID else None
        self.from_number = settings.TWILIO_PHONE_NUMBER

    @property
    def configured(self) -> bool:
        return self.client is not None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(SMSDeliveryError),
        reraise=True,
    )
    async def send_sms(self, to: str, message: str) -> dict:
        """
        Send an SMS message.
        Returns dict with 'sid' and 'status'.
        """
        if not self.client:
            logger.info("[DEV] SMS to %s: %s", to, message)
            return {"sid": "dev_mode", "status": "sent"}

        try:
            # Twilio SDK is synchronous, run in executor
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(
                None,
                lambda: self.client.messages.create(
                    body=message,
                    from_=self.from_number,
                    to=to,
                    status_callback=f"{settings.PUBLIC_BASE_URL}{settings.API_PREFIX}/webhooks/twilio/status"
                )
            )

            return {
                "sid": result.sid,
                "status": result.status,
            }

        except TwilioRestException as e:
            logger.warning("Twilio SMS to %s failed: %s", to, e.msg)
            raise SMSDeliveryError(f"Twilio SMS error: {e.msg}") from e
