"""Agent-side job schemas: gigs, check-in/out, proof of work, verification."""

from datetime import datetime, date
from typing import Optional, List, Literal
from uuid import UUID
from pydantic import BaseModel, Field

from app.models.job import JobStatus, ProofType


class GigResponse(BaseModel):
    """
    An open request as an agent sees it before accepting.
    Only the city/state is shown and only the agent's share of the price.
    """

    request_id: UUID
    service_type: str
    details: Optional[str]
    preferred_date: Optional[date]
    preferred_time: Optional[datetime]
    estimated_minutes: Optional[int]
    city: Optional[str]
    state: Optional[str]
    payout_cents: int
    status: JobStatus


class GigListResponse(BaseModel):
    gigs: List[GigResponse]
    total: int


class CheckinRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class CheckinResponse(BaseModel):
    assignment_id: UUID
    status: JobStatus
    location_verified: bool
    distance_meters: Optional[int]
    started_at: datetime


class CheckoutSurvey(BaseModel):
    """Short survey the agent fills in on checkout."""

    work_completed: bool = True
    issues_encountered: Optional[str] = None
    materials_used: Optional[str] = None
    additional_notes: Optional[str] = None


class CheckoutRequest(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    survey: CheckoutSurvey = Field(default_factory=CheckoutSurvey)


class CheckoutResponse(BaseModel):
    assignment_id: UUID
    status: JobStatus
    checked_out_at: datetime
    earning_cents: int


class ProofCreate(BaseModel):
    type: ProofType
    photo_url: str = Field(..., min_length=1, max_length=500)
    notes: Optional[str] = None


class ProofResponse(BaseModel):
    id: UUID
    type: ProofType
    photo_url: str
    notes: Optional[str]
    uploaded_at: datetime

    class Config:
        from_attributes = True


class AgentCancelRequest(BaseModel):
    reason: Optional[str] = None


class AssignmentResponse(BaseModel):
    id: UUID
    request_id: UUID
    agent_id: UUID
    status: JobStatus
    job_price_cents: Optional[int]
    agent_payout_cents: Optional[int]
    platform_fee_cents: Optional[int]
    assigned_at: Optional[datetime]
    started_at: Optional[datetime]
    checked_out_at: Optional[datetime]
    verified_at: Optional[datetime]
    paid_at: Optional[datetime]
    completed_at: Optional[datetime]
    rejection_notes: Optional[str]
    cancellation_reason: Optional[str]

    class Config:
        from_attributes = True


class AgentJobResponse(AssignmentResponse):
    """Assignment plus the booking details the agent needs on site."""

    service_type: Optional[str] = None
    details: Optional[str] = None
    preferred_time: Optional[datetime] = None
    preferred_date: Optional[date] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None


class AgentJobListResponse(BaseModel):
    jobs: List[AgentJobResponse]
    total: int


class VerifyRequest(BaseModel):
    """Admin review of a checked-out job. 'pay' and 'complete' are accepted only to explain they are gone."""

    action: Literal["approve", "verify", "reject", "pay", "complete"]
    notes: Optional[str] = None


class VerificationDetail(BaseModel):
    """What an admin looks at before approving."""

    assignment: AssignmentResponse
    proofs: List[ProofResponse]
    checkout_survey: Optional[dict] = None
    checkin_distance_meters: Optional[int] = None
    checkin_location_verified: Optional[bool] = None
