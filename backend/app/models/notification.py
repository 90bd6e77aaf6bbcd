"""Notification log and per-user notification preferences."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer, Text, JSON, Enum
from sqlalchemy.dialects.postgresql import UUID
from app.database import Base


class NotificationChannel(str, PyEnum):
    """Notification delivery channels."""
    SMS = "sms"
    PUSH = "push"


class NotificationStatus(str, PyEnum):
    """Notification delivery status."""
    QUEUED = "queued"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


class Notification(Base):
    """
    Every outbound SMS/push attempt, including skipped and failed ones.
    Failed SMS rows are picked up by the retry worker.
    """

    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), index=True)
    recipient_contact = Column(String(255))  # Phone number used

    channel = Column(Enum(NotificationChannel), nullable=False)
    status = Column(Enum(NotificationStatus), default=NotificationStatus.QUEUED, nullable=False)

    # Content
    template = Column(String(100))  # 'booking_confirmed', 'agent_assigned', ...
    title = Column(String(255))
    body = Column(Text, nullable=False)
    payload = Column(JSON)

    # External tracking
    external_id = Column(String(100), index=True)  # Twilio SID
    external_status = Column(String(50))

    # Error handling
    error = Column(Text)
    retry_count = Column(Integer, default=0)
    next_retry_at = Column(DateTime)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    sent_at = Column(DateTime)
    delivered_at = Column(DateTime)

    def __repr__(self):
        return f"<Notification {self.channel.value} {self.status.value}>"


class NotificationPreference(Base):
    """Opt-in flags per user. A missing row means everything is allowed."""

    __tablename__ = "notification_preferences"

    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), primary_key=True)

    sms_updates = Column(Boolean, default=True, nullable=False)
    push_updates = Column(Boolean, default=True, nullable=False)
    email_updates = Column(Boolean, default=True, nullable=False)
    marketing = Column(Boolean, default=False, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<NotificationPreference {self.user_id}>"
