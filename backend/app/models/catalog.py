"""Service catalog and agent-submitted catalog suggestions."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer, Text, Enum
from sqlalchemy.dialects.postgresql import UUID
from app.database import Base


class SuggestionStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ServiceCatalogEntry(Base):
    """A priced service clients can book. Keyed by a readable slug."""

    __tablename__ = "service_catalog"

    id = Column(String(100), primary_key=True)  # e.g. 'tv_mounting'
    name = Column(String(255), nullable=False)
    category = Column(String(100), default="general")
    description = Column(Text)
    icon = Column(String(20))

    base_minutes = Column(Integer, default=60)
    price_cents = Column(Integer, nullable=False)

    is_active = Column(Boolean, default=True)
    display_order = Column(Integer, default=0)

    suggested_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id"))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<ServiceCatalogEntry {self.id}>"


class ServiceSuggestion(Base):
    """A catalog proposal from an agent, awaiting admin review."""

    __tablename__ = "service_suggestions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agent_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)

    suggested_name = Column(String(255), nullable=False)
    suggested_category = Column(String(100))
    description = Column(Text)
    why_needed = Column(Text)

    status = Column(Enum(SuggestionStatus), default=SuggestionStatus.PENDING, nullable=False)
    reviewed_at = Column(DateTime)
    reviewed_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id"))
    review_notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<ServiceSuggestion {self.suggested_name} ({self.status.value})>"
