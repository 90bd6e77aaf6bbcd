"""SQLAlchemy models."""

from app.models.user import Profile, UserRole, OTPCode
from app.models.agent import AgentProfile, AgentStatus, AgentTier, AgentEarning, EarningStatus
from app.models.address import Address
from app.models.catalog import ServiceCatalogEntry, ServiceSuggestion, SuggestionStatus
from app.models.job import (
    JobStatus,
    JobAssignment,
    AgentCheckin,
    CheckinType,
    ProofOfWork,
    ProofType,
    Rating,
    RaterType,
    JobStatusHistory,
)
from app.models.request import ServiceRequest
from app.models.schedule import AvailableSlot
from app.models.notification import (
    Notification,
    NotificationChannel,
    NotificationStatus,
    NotificationPreference,
)

__all__ = [
    "Profile",
    "UserRole",
    "OTPCode",
    "AgentProfile",
    "AgentStatus",
    "AgentTier",
    "AgentEarning",
    "EarningStatus",
    "Address",
    "ServiceCatalogEntry",
    "ServiceSuggestion",
    "SuggestionStatus",
    "JobStatus",
    "JobAssignment",
    "AgentCheckin",
    "CheckinType",
    "ProofOfWork",
    "ProofType",
    "Rating",
    "RaterType",
    "JobStatusHistory",
    "ServiceRequest",
    "AvailableSlot",
    "Notification",
    "NotificationChannel",
    "NotificationStatus",
    "NotificationPreference",
]
