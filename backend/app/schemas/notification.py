"""Notification schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field

from app.models.notification import NotificationChannel, NotificationStatus


class NotificationSend(BaseModel):
    """Admin-triggered message to one user."""

    user_id: UUID
    channel: NotificationChannel = NotificationChannel.SMS
    title: Optional[str] = Field(None, max_length=255)
    body: str = Field(..., min_length=1, max_length=1600)
    template: Optional[str] = Field(None, max_length=100)
    payload: Optional[dict] = None


class NotificationResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID]
    channel: NotificationChannel
    status: NotificationStatus
    template: Optional[str]
    title: Optional[str]
    body: str
    external_id: Optional[str]
    error: Optional[str]
    retry_count: int
    created_at: datetime
    sent_at: Optional[datetime]

    class Config:
        from_attributes = True


class NotificationPreferencesSchema(BaseModel):
    sms_updates: bool = True
    push_updates: bool = True
    email_updates: bool = True
    marketing: bool = False

    class Config:
        from_attributes = True
