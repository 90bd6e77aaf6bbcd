"""Agent (gig worker) models."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text, JSON, Enum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.database import Base


class AgentStatus(str, PyEnum):
    """Agent onboarding/approval status."""
    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"
    REJECTED = "rejected"


class AgentTier(str, PyEnum):
    """Agent tier - drives the labor payout share."""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class EarningStatus(str, PyEnum):
    """Earning lifecycle."""
    PENDING = "pending"        # Checked out, awaiting verification
    AVAILABLE = "available"    # Verified, hold period elapsed
    PAID_OUT = "paid_out"


class AgentProfile(Base):
    """Agent-specific attributes. Shares its primary key with the profile."""

    __tablename__ = "agent_profiles"

    id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), primary_key=True)

    status = Column(Enum(AgentStatus), default=AgentStatus.PENDING, nullable=False)
    tier = Column(Enum(AgentTier), default=AgentTier.BRONZE, nullable=False)

    bio = Column(Text)
    service_types = Column(JSON, default=list)  # catalog ids the agent performs

    # Stats
    completed_jobs = Column(Integer, default=0)
    total_earnings_cents = Column(Integer, default=0)

    # Moderation
    suspended_reason = Column(Text)
    suspended_at = Column(DateTime)
    approved_at = Column(DateTime)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    profile = relationship("Profile", back_populates="agent_profile")

    def __repr__(self):
        return f"<AgentProfile {self.id} {self.status.value}/{self.tier.value}>"


class AgentEarning(Base):
    """Money owed to an agent for one job assignment."""

    __tablename__ = "agent_earnings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agent_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True)
    assignment_id = Column(UUID(as_uuid=True), ForeignKey("job_assignments.id"), nullable=False, unique=True)

    amount_cents = Column(Integer, nullable=False)
    status = Column(Enum(EarningStatus), default=EarningStatus.PENDING, nullable=False)
    type = Column(String(50), default="job_earning")

    available_at = Column(DateTime)
    paid_out_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<AgentEarning {self.amount_cents} {self.status.value}>"
