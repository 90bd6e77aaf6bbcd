"""Calendar slot schemas."""

from datetime import datetime, date, time
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field, field_validator, model_validator

from app.schemas.request import to_naive_utc


class SlotWindow(BaseModel):
    """One explicit slot."""

    slot_start: datetime
    slot_end: datetime

    @field_validator("slot_start", "slot_end")
    @classmethod
    def validate_utc(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_order(self):
        if self.slot_end <= self.slot_start:
            raise ValueError("slot_end must be after slot_start")
        return self


class SlotGenerate(BaseModel):
    """Cut a working day (UTC) into back-to-back slots."""

    date: date
    start_time: time
    end_time: time
    slot_minutes: int = Field(60, ge=15, le=480)

    @model_validator(mode="after")
    def check_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SlotCreateRequest(BaseModel):
    """Explicit slots, a generated day, or both."""

    slots: List[SlotWindow] = Field(default_factory=list)
    generate: Optional[SlotGenerate] = None


class SlotResponse(BaseModel):
    id: UUID
    slot_start: datetime
    slot_end: datetime
    is_booked: bool
    request_id: Optional[UUID]

    class Config:
        from_attributes = True


class SlotListResponse(BaseModel):
    slots: List[SlotResponse]
    total: int


class SlotCreateResponse(BaseModel):
    created: List[SlotResponse]
    skipped_existing: int
