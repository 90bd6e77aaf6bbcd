"""Calendar slots clients can book."""

import uuid
from datetime import datetime
from sqlalchemy import Column, Boolean, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from app.database import Base


class AvailableSlot(Base):
    """A bookable calendar slot. Booking a request flips is_booked."""

    __tablename__ = "available_slots"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    slot_start = Column(DateTime, nullable=False, unique=True, index=True)
    slot_end = Column(DateTime, nullable=False)

    is_booked = Column(Boolean, default=False, nullable=False)
    request_id = Column(UUID(as_uuid=True), ForeignKey("service_requests.id"))

    created_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id"))
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<AvailableSlot {self.slot_start} booked={self.is_booked}>"
