"""Job assignment models - the agent's side of a booking."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey, Text, Integer, Float, JSON, Enum, Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.database import Base


class JobStatus(str, PyEnum):
    """Lifecycle status shared by service requests and job assignments."""
    PENDING = "pending"                            # Requested, no agent yet
    CONFIRMED = "confirmed"                        # Admin confirmed the booking
    ASSIGNED = "assigned"                          # Agent accepted
    IN_PROGRESS = "in_progress"                    # Agent checked in on site
    PENDING_VERIFICATION = "pending_verification"  # Agent checked out, awaiting review
    VERIFIED = "verified"                          # Admin approved the work
    PAID = "paid"                                  # Agent payout released
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CheckinType(str, PyEnum):
    CHECKIN = "checkin"
    CHECKOUT = "checkout"


class ProofType(str, PyEnum):
    """Proof-of-work photo kinds."""
    BOX = "box"            # Before: the item as delivered
    FINISHED = "finished"  # After: the completed work


class RaterType(str, PyEnum):
    CLIENT = "client"
    AGENT = "agent"


class JobAssignment(Base):
    """Link between an accepted request and the agent performing it."""

    __tablename__ = "job_assignments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id = Column(UUID(as_uuid=True), ForeignKey("service_requests.id"), nullable=False)
    agent_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    assigned_by = Column(String(20), default="agent")  # 'agent', 'admin', 'auto'

    status = Column(Enum(JobStatus), default=JobStatus.ASSIGNED, nullable=False)

    # Money (cents)
    job_price_cents = Column(Integer, default=0)
    agent_payout_cents = Column(Integer, default=0)
    platform_fee_cents = Column(Integer, default=0)

    # Lifecycle
    assigned_at = Column(DateTime, default=datetime.utcnow)
    started_at = Column(DateTime)
    checked_out_at = Column(DateTime)
    verified_at = Column(DateTime)
    verified_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id"))
    verification_notes = Column(Text)
    paid_at = Column(DateTime)
    completed_at = Column(DateTime)

    # Rejection (work sent back to the agent)
    rejection_notes = Column(Text)
    rejected_at = Column(DateTime)
    rejected_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id"))

    cancellation_reason = Column(Text)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    request = relationship("ServiceRequest", back_populates="assignment")
    checkins = relationship("AgentCheckin", back_populates="assignment", cascade="all, delete-orphan")
    proofs = relationship("ProofOfWork", back_populates="assignment", cascade="all, delete-orphan")
    status_history = relationship("JobStatusHistory", back_populates="assignment", cascade="all, delete-orphan")

    # One assignment per request
    __table_args__ = (
        Index("ix_job_assignments_request", "request_id", unique=True),
        Index("ix_job_assignments_agent", "agent_id"),
    )

    def __repr__(self):
        return f"<JobAssignment {self.id} ({self.status.value})>"


class AgentCheckin(Base):
    """Check-in / check-out events recorded by the agent app."""

    __tablename__ = "agent_checkins"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    assignment_id = Column(UUID(as_uuid=True), ForeignKey("job_assignments.id"), nullable=False)
    agent_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)

    type = Column(Enum(CheckinType), nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    location_verified = Column(Boolean, default=False)
    distance_from_job_meters = Column(Integer)

    survey_data = Column(JSON)  # checkout survey

    created_at = Column(DateTime, default=datetime.utcnow)

    assignment = relationship("JobAssignment", back_populates="checkins")

    __table_args__ = (
        Index("ix_agent_checkins_assignment_type", "assignment_id", "type", unique=True),
    )

    def __repr__(self):
        return f"<AgentCheckin {self.type.value} {self.assignment_id}>"


class ProofOfWork(Base):
    """Before/after photos uploaded by the agent."""

    __tablename__ = "proof_of_work"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    assignment_id = Column(UUID(as_uuid=True), ForeignKey("job_assignments.id"), nullable=False)
    agent_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)

    type = Column(Enum(ProofType), nullable=False)
    photo_url = Column(String(500), nullable=False)
    notes = Column(Text)

    uploaded_at = Column(DateTime, default=datetime.utcnow)

    assignment = relationship("JobAssignment", back_populates="proofs")

    __table_args__ = (
        Index("ix_proof_of_work_assignment_type", "assignment_id", "type", unique=True),
    )

    def __repr__(self):
        return f"<ProofOfWork {self.type.value} {self.assignment_id}>"


class Rating(Base):
    """A 1-5 rating left by one side of a completed job about the other."""

    __tablename__ = "ratings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_assignment_id = Column(UUID(as_uuid=True), ForeignKey("job_assignments.id"), nullable=False)
    rater_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    ratee_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    rater_type = Column(Enum(RaterType), nullable=False)

    rating = Column(Integer, nullable=False)
    review = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)

    # One rating per side per job
    __table_args__ = (
        Index("ix_ratings_assignment_rater_type", "job_assignment_id", "rater_type", unique=True),
    )

    def __repr__(self):
        return f"<Rating {self.rater_type.value} {self.rating}>"


class JobStatusHistory(Base):
    """Track all status changes for auditing."""

    __tablename__ = "job_status_history"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    assignment_id = Column(UUID(as_uuid=True), ForeignKey("job_assignments.id"))
    request_id = Column(UUID(as_uuid=True), ForeignKey("service_requests.id"), nullable=False)

    from_status = Column(String(50))
    to_status = Column(String(50), nullable=False)
    action = Column(String(50))

    changed_by_type = Column(String(20))  # 'client', 'agent', 'admin', 'system'
    changed_by_id = Column(UUID(as_uuid=True))

    reason = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)

    assignment = relationship("JobAssignment", back_populates="status_history")

    def __repr__(self):
        return f"<JobStatusHistory {self.from_status} -> {self.to_status}>"
