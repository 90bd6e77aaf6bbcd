"""Notification service - SMS/push delivery with preference checks and tracking."""

import logging
from datetime import datetime, timedelta
from typing import Optional, List
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import (
    Notification,
    NotificationChannel,
    NotificationStatus,
    NotificationPreference,
)
from app.models.user import Profile, UserRole
from app.models.request import ServiceRequest
from app.integrations.twilio_client import TwilioClient, SMSDeliveryError
from app.exceptions import MarketplaceError, NotFoundError, ValidationError
from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

ERROR_OPTED_OUT = "opted_out"
ERROR_NO_PHONE = "No phone number on file"
ERROR_PUSH_NOT_IMPLEMENTED = "push_not_implemented"

# Twilio status callback values mapped onto our statuses
TWILIO_STATUS_MAP = {
    "sent": NotificationStatus.SENT,
    "delivered": NotificationStatus.DELIVERED,
    "undelivered": NotificationStatus.FAILED,
    "failed": NotificationStatus.FAILED,
}


class NotificationService:
    """Service for sending and tracking notifications."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.twilio = TwilioClient()

    async def get_preferences(self, user_id: UUID) -> Optional[NotificationPreference]:
        result = await self.db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def update_preferences(self, user_id: UUID, values: dict) -> NotificationPreference:
        """Upsert the user's preference row."""
        prefs = await self.get_preferences(user_id)
        if prefs is None:
            prefs = NotificationPreference(user_id=user_id)
            self.db.add(prefs)
        for field, value in values.items():
            setattr(prefs, field, value)
        await self.db.commit()
        await self.db.refresh(prefs)
        return prefs

    async def send(
        self,
        user_id: UUID,
        body: str,
        channel: NotificationChannel = NotificationChannel.SMS,
        title: Optional[str] = None,
        template: Optional[str] = None,
        payload: Optional[dict] = None,
        raise_on_failure: bool = False,
    ) -> Notification:
        """
        Send one notification to a user and log the attempt.

        A missing preference row means the user has not opted out of anything.
        With ``raise_on_failure`` a failed attempt is still logged, then raised
        (400 for a missing phone number, 500 for a vendor error).
        """
        result = await self.db.execute(select(Profile).where(Profile.id == user_id))
        profile = result.scalar_one_or_none()
        if not profile:
            raise NotFoundError("User not found")

        prefs = await self.get_preferences(user_id)
        if channel == NotificationChannel.SMS:
            allowed = prefs is None or prefs.sms_updates
        else:
            allowed = prefs is None or prefs.push_updates

        notification = Notification(
            user_id=user_id,
            recipient_contact=profile.phone if channel == NotificationChannel.SMS else None,
            channel=channel,
            status=NotificationStatus.QUEUED,
            template=template,
            title=title,
            body=body,
            payload=payload,
        )
        self.db.add(notification)

        if not allowed:
            notification.status = NotificationStatus.SKIPPED
            notification.error = ERROR_OPTED_OUT
            logger.info("Skipped %s to %s: opted out", channel.value, user_id)
        elif channel == NotificationChannel.PUSH:
            # No push provider yet; kept queued so it can be delivered later
            notification.error = ERROR_PUSH_NOT_IMPLEMENTED
        elif not profile.phone:
            notification.status = NotificationStatus.FAILED
            notification.error = ERROR_NO_PHONE
        else:
            await self._deliver_sms(notification)

        await self.db.commit()
        await self.db.refresh(notification)

        if raise_on_failure and notification.status == NotificationStatus.FAILED:
            if notification.error == ERROR_NO_PHONE:
                raise ValidationError(ERROR_NO_PHONE, code="notification.no_phone")
            raise MarketplaceError(
                notification.error or "Failed to send notification",
                code="notification.failed",
            )

        return notification

    async def send_to_phone(
        self,
        phone: str,
        body: str,
        template: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> Notification:
        """Send an SMS to a bare number (admin alerts); no preference check."""
        notification = Notification(
            user_id=user_id,
            recipient_contact=phone,
            channel=NotificationChannel.SMS,
            status=NotificationStatus.QUEUED,
            template=template,
            body=body,
        )
        self.db.add(notification)
        await self._deliver_sms(notification)
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    async def _deliver_sms(self, notification: Notification) -> None:
        try:
            result = await self.twilio.send_sms(notification.recipient_contact, notification.body)
        except SMSDeliveryError as e:
            notification.status = NotificationStatus.FAILED
            notification.error = str(e)
            notification.next_retry_at = datetime.utcnow() + timedelta(
                minutes=settings.NOTIFICATION_RETRY_MINUTES
            )
            logger.error("SMS to %s failed: %s", notification.recipient_contact, e)
            return

        notification.external_id = result.get("sid")
        notification.external_status = result.get("status")
        notification.status = NotificationStatus.SENT
        notification.sent_at = datetime.utcnow()
        notification.error = None

    # Retry

    async def get_failed_notifications_for_retry(self) -> List[Notification]:
        """Failed SMS that are due for another attempt."""
        result = await self.db.execute(
            select(Notification).where(
                Notification.channel == NotificationChannel.SMS,
                Notification.status == NotificationStatus.FAILED,
                Notification.recipient_contact.isnot(None),
                Notification.retry_count < settings.NOTIFICATION_MAX_RETRIES,
                Notification.next_retry_at <= datetime.utcnow(),
            )
        )
        return list(result.scalars())

    async def retry_notification(self, notification: Notification) -> Notification:
        """Retry a failed notification."""
        notification.retry_count = (notification.retry_count or 0) + 1
        await self._deliver_sms(notification)
        if (
            notification.status == NotificationStatus.FAILED
            and notification.retry_count >= settings.NOTIFICATION_MAX_RETRIES
        ):
            notification.next_retry_at = None
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    # Delivery receipts

    async def record_delivery_status(
        self,
        external_id: str,
        external_status: str,
        error_code: Optional[str] = None,
    ) -> Optional[Notification]:
        """Apply a Twilio status callback to the matching log row."""
        result = await self.db.execute(
            select(Notification).where(Notification.external_id == external_id)
        )
        notification = result.scalar_one_or_none()
        if not notification:
            logger.warning("Status callback for unknown message %s", external_id)
            return None

        notification.external_status = external_status
        mapped = TWILIO_STATUS_MAP.get(external_status)
        if mapped is not None:
            notification.status = mapped
        if mapped == NotificationStatus.DELIVERED:
            notification.delivered_at = datetime.utcnow()
        if mapped == NotificationStatus.FAILED:
            notification.error = f"Twilio error {error_code}" if error_code else "Undelivered"

        await self.db.commit()
        return notification

    # Pre-built notification templates

    async def _admin_alert_phones(self) -> List[str]:
        configured = [p.strip() for p in settings.ADMIN_ALERT_PHONES.split(",") if p.strip()]
        if configured:
            return configured
        result = await self.db.execute(
            select(Profile.phone).where(
                Profile.role == UserRole.ADMIN,
                Profile.is_active == True,
                Profile.phone.isnot(None),
            )
        )
        return [phone for phone in result.scalars() if phone]

    async def notify_new_request(self, request: ServiceRequest, client: Profile) -> None:
        """Tell the admins a booking came in."""
        when = request.preferred_time or request.preferred_date or "flexible"
        message = (
            f"New booking: {request.service_type} for "
            f"{client.display_name} ({when})."
        )
        for phone in await self._admin_alert_phones():
            await self.send_to_phone(phone, message, template="new_request_admin")

    async def notify_booking_confirmed(self, request: ServiceRequest, client: Profile) -> None:
        """Confirmation text to the client."""
        when = request.preferred_time or request.preferred_date
        message = f"Your {request.service_type} booking is confirmed"
        message += f" for {when:%b %d %H:%M} UTC." if isinstance(when, datetime) else "."
        await self.send(
            client.id,
            message,
            title="Booking confirmed",
            template="booking_confirmed",
            payload={"request_id": str(request.id)},
        )

    async def notify_agent_assigned(
        self,
        request: ServiceRequest,
        client: Profile,
        agent: Profile,
    ) -> None:
        """Let the client know who is coming."""
        message = (
            f"Good news! {agent.first_name or 'Your pro'} has accepted your "
            f"{request.service_type} booking."
        )
        await self.send(
            client.id,
            message,
            title="Pro assigned",
            template="agent_assigned",
            payload={"request_id": str(request.id), "agent_id": str(agent.id)},
        )
