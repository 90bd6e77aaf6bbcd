"""External service integrations."""

from app.integrations.twilio_client import TwilioClient, SMSDeliveryError
from app.integrations.stripe_client import StripeClient

__all__ = [
    "TwilioClient",
    "SMSDeliveryError",
    "StripeClient",
]
