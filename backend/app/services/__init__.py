"""Business logic services."""

from app.services.auth_service import AuthService
from app.services.request_service import RequestService
from app.services.job_service import JobService
from app.services.agent_service import AgentService
from app.services.admin_service import AdminService
from app.services.catalog_service import CatalogService
from app.services.notification_service import NotificationService
from app.services.rating_service import RatingService

__all__ = [
    "AuthService",
    "RequestService",
    "JobService",
    "AgentService",
    "AdminService",
    "CatalogService",
    "NotificationService",
    "RatingService",
]
