"""
Notification retry worker.
Retries failed SMS until the retry cap is reached.
Runs every 5 minutes.
"""

import asyncio
import logging

from app.database import AsyncSessionLocal
from app.models.notification import NotificationStatus
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


async def retry_failed_notifications() -> dict:
    """Find failed notifications that are due and send them again."""
    async with AsyncSessionLocal() as db:
        notification_service = NotificationService(db)
        failed = await notification_service.get_failed_notifications_for_retry()

        successes = 0
        for notification in failed:
            notification = await notification_service.retry_notification(notification)
            if notification.status == NotificationStatus.SENT:
                successes += 1
                logger.info("Retry successful: %s", notification.id)
            else:
                logger.warning(
                    "Retry %s failed for %s: %s",
                    notification.retry_count, notification.id, notification.error,
                )

        return {
            "retries_attempted": len(failed),
            "successes": successes,
        }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    result = asyncio.run(retry_failed_notifications())
    logger.info("Retry results: %s", result)
