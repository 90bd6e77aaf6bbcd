"""Agent profile, earnings and admin moderation schemas."""

from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field

from app.models.agent import AgentStatus, AgentTier, EarningStatus


class AgentRegister(BaseModel):
    """Apply to become an agent."""

    bio: Optional[str] = Field(None, max_length=2000)
    service_types: List[str] = Field(default_factory=list)


class AgentProfileUpdate(BaseModel):
    bio: Optional[str] = Field(None, max_length=2000)
    service_types: Optional[List[str]] = None


class AgentProfileResponse(BaseModel):
    id: UUID
    status: AgentStatus
    tier: AgentTier
    bio: Optional[str]
    service_types: Optional[List[str]]
    completed_jobs: int
    total_earnings_cents: int
    suspended_reason: Optional[str]
    approved_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class AgentSummary(AgentProfileResponse):
    """Agent profile joined with contact details, for the admin console."""

    email: Optional[str] = None
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    average_rating: Optional[float] = None


class AgentListResponse(BaseModel):
    agents: List[AgentSummary]
    total: int


class AgentAdminUpdate(BaseModel):
    status: Optional[AgentStatus] = None
    tier: Optional[AgentTier] = None


class AgentSuspend(BaseModel):
    reason: str = Field(..., min_length=1)


class EarningResponse(BaseModel):
    id: UUID
    assignment_id: UUID
    amount_cents: int
    status: EarningStatus
    available_at: Optional[datetime]
    paid_out_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class EarningsSummary(BaseModel):
    pending_cents: int
    available_cents: int
    paid_out_cents: int
    total_cents: int
    earnings: List[EarningResponse]
