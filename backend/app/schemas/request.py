"""Service request (booking) schemas."""

from datetime import datetime, date, timezone
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from app.models.job import JobStatus, RaterType


def to_naive_utc(v: Optional[datetime]) -> Optional[datetime]:
    """Store everything as naive UTC; aware inputs are converted first."""
    if v is None or v.tzinfo is None:
        return v
    return v.astimezone(timezone.utc).replace(tzinfo=None)


class RequestCreate(BaseModel):
    """Create a request from a catalog service."""

    service_type: str = Field(..., max_length=100)
    details: Optional[str] = None
    address_id: Optional[UUID] = None
    preferred_date: Optional[date] = None
    preferred_time: Optional[datetime] = None

    @field_validator("preferred_time")
    @classmethod
    def validate_preferred_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class BookingCreate(BaseModel):
    """
    Book a service into calendar slots (all or none) or at a free time.
    Prices are client-quoted and normalised server-side.
    """

    service_type: str = Field(..., max_length=100)
    details: Optional[str] = None
    address_id: Optional[UUID] = None

    slot_starts: List[datetime] = Field(default_factory=list)
    preferred_time: Optional[datetime] = None
    estimated_minutes: Optional[int] = Field(None, gt=0)

    total_price_cents: Optional[float] = None
    labor_price_cents: Optional[float] = None
    materials_cost_cents: Optional[float] = None

    payment_method_id: Optional[str] = Field(None, max_length=100)

    @field_validator("preferred_time")
    @classmethod
    def validate_preferred_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)

    @field_validator("slot_starts")
    @classmethod
    def validate_slot_starts(cls, v: List[datetime]) -> List[datetime]:
        return [to_naive_utc(s) for s in v]


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class CancellationQuote(BaseModel):
    """Fee preview shown before the client confirms a cancellation."""

    request_id: UUID
    scheduled_at: Optional[datetime]
    time_until: Optional[str]
    cancellation_fee_cents: int
    refund_cents: int
    cancellable: bool


class RequestResponse(BaseModel):
    id: UUID
    user_id: UUID
    address_id: Optional[UUID]
    service_type: str
    details: Optional[str]
    status: JobStatus
    preferred_date: Optional[date]
    preferred_time: Optional[datetime]
    estimated_minutes: Optional[int]
    total_price_cents: Optional[int]
    labor_price_cents: Optional[int]
    materials_cost_cents: Optional[int]
    assigned_agent_id: Optional[UUID]
    cancellation_reason: Optional[str]
    cancellation_fee_cents: Optional[int]
    refund_cents: Optional[int]
    cancelled_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class RequestDetailResponse(RequestResponse):
    """Single booking with the derived fee preview."""

    cancellation_fee_preview_cents: Optional[int] = None
    time_until: Optional[str] = None


class RequestListResponse(BaseModel):
    requests: List[RequestResponse]
    total: int


class RatingCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=2000)


class RatingResponse(BaseModel):
    id: UUID
    rating: int
    review: Optional[str]
    rater_type: RaterType
    created_at: datetime

    class Config:
        from_attributes = True


class RatingStatus(BaseModel):
    has_rated: bool
    rating: Optional[RatingResponse] = None
