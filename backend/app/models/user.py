"""Profile model shared by clients, agents and admins, plus OTP login codes."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, String, Boolean, DateTime, Float, Integer, Enum, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.database import Base


class UserRole(str, PyEnum):
    """User roles for access control."""
    CLIENT = "client"   # Books services
    AGENT = "agent"     # Performs gigs
    ADMIN = "admin"     # Runs the marketplace


class Profile(Base):
    """User profile - one row per account regardless of role."""

    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Auth
    email = Column(String(255))
    password_hash = Column(String(255))
    phone = Column(String(20))
    phone_verified = Column(Boolean, default=False)

    # Profile
    first_name = Column(String(100))
    last_name = Column(String(100))
    role = Column(Enum(UserRole), default=UserRole.CLIENT, nullable=False)

    # Home location (used as the job location for new requests)
    street = Column(String(255))
    city = Column(String(100))
    state = Column(String(50))
    postal_code = Column(String(20))
    location_latitude = Column(Float)
    location_longitude = Column(Float)

    # Status
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login_at = Column(DateTime)

    # Relationships
    agent_profile = relationship("AgentProfile", back_populates="profile", uselist=False)
    addresses = relationship("Address", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_profiles_email", "email", unique=True),
        Index("ix_profiles_phone", "phone"),
    )

    @property
    def full_name(self) -> str:
        return " ".join(p for p in [self.first_name, self.last_name] if p)

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or self.phone or "User"

    def __repr__(self):
        return f"<Profile {self.email or self.phone} ({self.role.value})>"


class OTPCode(Base):
    """OTP codes for SMS login."""

    __tablename__ = "otp_codes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    phone = Column(String(20), nullable=False, index=True)
    code = Column(String(6), nullable=False)

    # State
    verified = Column(Boolean, default=False)
    attempts = Column(Integer, default=0)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)
    verified_at = Column(DateTime)

    def __repr__(self):
        return f"<OTPCode {self.phone}>"
