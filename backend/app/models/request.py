"""Service request (booking) model."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Date, Integer, Float, Enum, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.job import JobStatus


class ServiceRequest(Base):
    """A client's booking: what, when, where, how much, and where it is in its lifecycle."""

    __tablename__ = "service_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    address_id = Column(UUID(as_uuid=True), ForeignKey("addresses.id"))

    # Details
    service_type = Column(String(100), nullable=False)  # service_catalog.id
    details = Column(Text)
    status = Column(Enum(JobStatus), default=JobStatus.PENDING, nullable=False)

    # Scheduling
    preferred_date = Column(Date)
    preferred_time = Column(DateTime)  # exact start, UTC
    estimated_minutes = Column(Integer)

    # Pricing (cents)
    total_price_cents = Column(Integer)
    labor_price_cents = Column(Integer)
    materials_cost_cents = Column(Integer)

    # Payment
    payment_method_id = Column(String(100))  # card on file, charged on acceptance
    payment_intent_id = Column(String(100))

    # Assignment
    assigned_agent_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"))

    # Job location (copied from the client's profile for geofenced check-in)
    job_latitude = Column(Float)
    job_longitude = Column(Float)

    # Cancellation
    cancellation_reason = Column(Text)
    cancellation_fee_cents = Column(Integer)
    refund_cents = Column(Integer)
    cancelled_at = Column(DateTime)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    assignment = relationship("JobAssignment", back_populates="request", uselist=False)

    __table_args__ = (
        Index("ix_service_requests_user", "user_id"),
        Index("ix_service_requests_status", "status"),
    )

    def __repr__(self):
        return f"<ServiceRequest {self.id} {self.service_type} ({self.status.value})>"
