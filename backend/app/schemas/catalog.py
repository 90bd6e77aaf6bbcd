"""Service catalog and suggestion schemas."""

from datetime import datetime
from typing import Optional, List, Literal
from uuid import UUID
from pydantic import BaseModel, Field

from app.models.catalog import SuggestionStatus


class CatalogServiceResponse(BaseModel):
    id: str
    name: str
    category: Optional[str]
    description: Optional[str]
    icon: Optional[str]
    base_minutes: int
    price_cents: int
    is_active: bool
    display_order: int

    class Config:
        from_attributes = True


class CatalogServiceUpsert(BaseModel):
    """Create or replace a catalog entry (admin)."""

    id: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9_]+$")
    name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = Field("general", max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=20)
    base_minutes: int = Field(60, gt=0)
    price_cents: int = Field(..., ge=0)
    is_active: bool = True
    display_order: int = 0


class CatalogServiceDelete(BaseModel):
    id: str


class SuggestionCreate(BaseModel):
    """An agent's proposal for a new catalog service."""

    suggested_name: str = Field(..., min_length=1, max_length=255)
    suggested_category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    why_needed: Optional[str] = None


class SuggestionResponse(BaseModel):
    id: UUID
    agent_id: UUID
    suggested_name: str
    suggested_category: Optional[str]
    description: Optional[str]
    why_needed: Optional[str]
    status: SuggestionStatus
    reviewed_at: Optional[datetime]
    review_notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class SuggestionReview(BaseModel):
    """Admin decision on a suggestion; approval can override catalog defaults."""

    suggestion_id: UUID
    action: Literal["approve", "reject"]
    review_notes: Optional[str] = None
    price_cents: Optional[int] = Field(None, ge=0)
    base_minutes: Optional[int] = Field(None, gt=0)
    icon: Optional[str] = Field(None, max_length=20)


class SuggestionReviewResponse(BaseModel):
    suggestion: SuggestionResponse
    service: Optional[CatalogServiceResponse] = None


class SuggestionListResponse(BaseModel):
    suggestions: List[SuggestionResponse]
    total: int
