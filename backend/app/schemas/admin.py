"""Admin console schemas."""

from datetime import datetime, date
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from app.models.job import JobStatus
from app.schemas.job import AssignmentResponse
from app.schemas.request import RequestResponse, to_naive_utc


class RequestAdminUpdate(BaseModel):
    """Edit a booking. A status change is applied through the lifecycle rules."""

    request_id: UUID
    status: Optional[JobStatus] = None
    details: Optional[str] = None
    preferred_date: Optional[date] = None
    preferred_time: Optional[datetime] = None
    estimated_minutes: Optional[int] = Field(None, gt=0)
    total_price_cents: Optional[int] = Field(None, ge=0)
    labor_price_cents: Optional[int] = Field(None, ge=0)
    materials_cost_cents: Optional[int] = Field(None, ge=0)
    reason: Optional[str] = None

    @field_validator("preferred_time")
    @classmethod
    def validate_preferred_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class AdminJobResponse(BaseModel):
    """Request plus its assignment, if any."""

    request: RequestResponse
    assignment: Optional[AssignmentResponse] = None
    client_name: Optional[str] = None
    agent_name: Optional[str] = None


class AdminJobListResponse(BaseModel):
    jobs: List[AdminJobResponse]
    total: int


class ClientSummary(BaseModel):
    id: UUID
    email: Optional[str]
    phone: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    city: Optional[str]
    state: Optional[str]
    is_active: bool
    created_at: datetime
    request_count: int = 0

    class Config:
        from_attributes = True


class ClientListResponse(BaseModel):
    clients: List[ClientSummary]
    total: int


class BillingSummary(BaseModel):
    """Money totals across the marketplace (cents)."""

    charged_cents: int
    refunded_cents: int
    cancellation_fees_cents: int
    agent_payouts_cents: int
    platform_fees_cents: int
    pending_earnings_cents: int
    available_earnings_cents: int
    paid_out_earnings_cents: int
    completed_jobs: int
