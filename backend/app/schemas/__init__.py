"""Pydantic schemas for API request/response validation."""

from app.schemas.profile import (
    RegisterRequest,
    LoginRequest,
    OTPRequest,
    OTPVerify,
    TokenResponse,
    ProfileUpdate,
    ProfileResponse,
    AddressCreate,
    AddressResponse,
)
from app.schemas.request import (
    RequestCreate,
    BookingCreate,
    CancelRequest,
    CancellationQuote,
    RequestResponse,
    RequestDetailResponse,
    RequestListResponse,
    RatingCreate,
    RatingResponse,
    RatingStatus,
)
from app.schemas.job import (
    GigResponse,
    GigListResponse,
    CheckinRequest,
    CheckinResponse,
    CheckoutRequest,
    CheckoutResponse,
    ProofCreate,
    ProofResponse,
    AgentCancelRequest,
    AssignmentResponse,
    AgentJobResponse,
    AgentJobListResponse,
    VerifyRequest,
    VerificationDetail,
)
from app.schemas.agent import (
    AgentRegister,
    AgentProfileUpdate,
    AgentProfileResponse,
    AgentSummary,
    AgentListResponse,
    AgentAdminUpdate,
    AgentSuspend,
    EarningsSummary,
)
from app.schemas.catalog import (
    CatalogServiceResponse,
    CatalogServiceUpsert,
    CatalogServiceDelete,
    SuggestionCreate,
    SuggestionResponse,
    SuggestionReview,
    SuggestionReviewResponse,
    SuggestionListResponse,
)
from app.schemas.schedule import (
    SlotCreateRequest,
    SlotResponse,
    SlotListResponse,
    SlotCreateResponse,
)
from app.schemas.notification import (
    NotificationSend,
    NotificationResponse,
    NotificationPreferencesSchema,
)
from app.schemas.admin import (
    RequestAdminUpdate,
    AdminJobResponse,
    AdminJobListResponse,
    ClientSummary,
    ClientListResponse,
    BillingSummary,
)

__all__ = [
    # Profile / auth
    "RegisterRequest",
    "LoginRequest",
    "OTPRequest",
    "OTPVerify",
    "TokenResponse",
    "ProfileUpdate",
    "ProfileResponse",
    "AddressCreate",
    "AddressResponse",
    # Requests
    "RequestCreate",
    "BookingCreate",
    "CancelRequest",
    "CancellationQuote",
    "RequestResponse",
    "RequestDetailResponse",
    "RequestListResponse",
    "RatingCreate",
    "RatingResponse",
    "RatingStatus",
    # Jobs
    "GigResponse",
    "GigListResponse",
    "CheckinRequest",
    "CheckinResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "ProofCreate",
    "ProofResponse",
    "AgentCancelRequest",
    "AssignmentResponse",
    "AgentJobResponse",
    "AgentJobListResponse",
    "VerifyRequest",
    "VerificationDetail",
    # Agents
    "AgentRegister",
    "AgentProfileUpdate",
    "AgentProfileResponse",
    "AgentSummary",
    "AgentListResponse",
    "AgentAdminUpdate",
    "AgentSuspend",
    "EarningsSummary",
    # Catalog
    "CatalogServiceResponse",
    "CatalogServiceUpsert",
    "CatalogServiceDelete",
    "SuggestionCreate",
    "SuggestionResponse",
    "SuggestionReview",
    "SuggestionReviewResponse",
    "SuggestionListResponse",
    # Schedule
    "SlotCreateRequest",
    "SlotResponse",
    "SlotListResponse",
    "SlotCreateResponse",
    # Notifications
    "NotificationSend",
    "NotificationResponse",
    "NotificationPreferencesSchema",
    # Admin
    "RequestAdminUpdate",
    "AdminJobResponse",
    "AdminJobListResponse",
    "ClientSummary",
    "ClientListResponse",
    "BillingSummary",
]
