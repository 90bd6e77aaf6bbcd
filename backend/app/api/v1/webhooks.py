"""Webhook endpoints for external services (Twilio delivery receipts)."""

import logging
from typing import Optional
from urllib.parse import parse_qs
from fastapi import APIRouter, Depends, HTTPException, status, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from twilio.request_validator import RequestValidator

from app.database import get_db
from app.config import get_settings
from app.services.notification_service import NotificationService

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/twilio/status")
async def twilio_status_callback(
    request: Request,
    db: AsyncSession = Depends(get_db),
    x_twilio_signature: Optional[str] = Header(None),
):
    """
    Twilio message status callback.

    Updates the notification log with the delivery outcome. The signature
    is checked whenever a Twilio auth token is configured.
    """
    body = (await request.body()).decode()
    params = {key: values[-1] for key, values in parse_qs(body).items()}

    if settings.TWILIO_AUTH_TOKEN:
        validator = RequestValidator(settings.TWILIO_AUTH_TOKEN)
        url = f"{settings.PUBLIC_BASE_URL.rstrip('/')}{request.url.path}"
        if not x_twilio_signature or not validator.validate(url, params, x_twilio_signature):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid webhook signature"
            )

    message_sid = params.get("MessageSid")
    message_status = params.get("MessageStatus")
    if not message_sid or not message_status:
        return {"status": "ignored", "message": "Missing MessageSid or MessageStatus"}

    notification = await NotificationService(db).record_delivery_status(
        message_sid, message_status, params.get("ErrorCode"),
    )
    if notification is None:
        return {"status": "ignored", "message": "Unknown message"}

    logger.info("Twilio status %s for %s", message_status, message_sid)
    return {"status": "ok", "notification_status": notification.status.value}
