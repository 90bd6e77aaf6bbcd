"""Admin-triggered notifications."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.api.deps import get_current_admin
from app.models.user import Profile
from app.schemas.notification import NotificationSend, NotificationResponse
from app.services.notification_service import NotificationService

router = APIRouter()


@router.post("/send", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def send_notification(
    data: NotificationSend,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    """
    Send one message to a user.

    Users who opted out of the channel get a SKIPPED log entry instead.
    A user without a phone number is a 400; a Twilio failure is a 500.
    """
    return await NotificationService(db).send(
        user_id=data.user_id,
        body=data.body,
        channel=data.channel,
        title=data.title,
        template=data.template,
        payload=data.payload,
        raise_on_failure=True,
    )
