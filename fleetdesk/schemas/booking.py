import enum
import uuid
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

from fleetdesk.services.intervals import to_utc


class TimeFilter(str, enum.Enum):
    ALL      = "all"
    UPCOMING = "upcoming"
    PAST     = "past"


def _clean(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class BookingCreateRequest(BaseModel):
    vehicle_id:      uuid.UUID
    start_time:      datetime
    end_time:        datetime
    reason:          Optional[str] = None
    destination:     Optional[str] = None
    passenger_count: int = Field(1, gt=0, le=50)
    notes:           Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize(cls, v):
        return to_utc(v)

    @field_validator("reason", "destination", "notes")
    @classmethod
    def strip_text(cls, v):
        return _clean(v)

    @model_validator(mode="after")
    def check_dates(self) -> "BookingCreateRequest":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BookingUpdateRequest(BaseModel):
    """Regular edits only; status changes go through the dedicated endpoints."""
    start_time:      Optional[datetime] = None
    end_time:        Optional[datetime] = None
    reason:          Optional[str] = None
    destination:     Optional[str] = None
    passenger_count: Optional[int] = Field(None, gt=0, le=50)
    notes:           Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize(cls, v):
        return to_utc(v) if v is not None else None

    @field_validator("reason", "destination", "notes")
    @classmethod
    def strip_text(cls, v):
        return _clean(v)


class RejectRequest(BaseModel):
    reason: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v):
        return _clean(v)
