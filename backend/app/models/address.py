"""Client service addresses."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.database import Base


class Address(Base):
    """Client service addresses - clients can have multiple."""

    __tablename__ = "addresses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True)

    label = Column(String(50), default="Home")  # Home, Office, Rental, etc.

    street = Column(String(255), nullable=False)
    unit = Column(String(50))
    city = Column(String(100), nullable=False)
    state = Column(String(50), nullable=False)
    postal_code = Column(String(20), nullable=False)

    # Access info for agents
    access_notes = Column(Text)

    is_default = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("Profile", back_populates="addresses")

    @property
    def full_address(self) -> str:
        """Return formatted full address."""
        parts = [self.street]
        if self.unit:
            parts.append(f"Unit {self.unit}")
        parts.append(f"{self.city}, {self.state} {self.postal_code}")
        return ", ".join(parts)

    def __repr__(self):
        return f"<Address {self.street}, {self.city}>"
