from datetime import datetime, UTC
from typing import Any, Optional, List
from pydantic import Field, field_validator, model_validator
from .base import BaseSchema, TimestampSchema

class EventBase(BaseSchema):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    location: Optional[str] = Field(None, max_length=200)
    start_time: datetime
    end_time: Optional[datetime] = None
    capacity: int = Field(..., ge=0)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_datetime(cls, v: Any) -> Any:
        if v is None:
            return v
        if isinstance(v, str):
            try:
                dt = datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError as e:
                raise ValueError("Invalid datetime format") from e
            return dt if dt.tzinfo else dt.replace(tzinfo=UTC)
        elif isinstance(v, datetime):
            return v if v.tzinfo else v.replace(tzinfo=UTC)
        raise ValueError("Invalid datetime type")

    @model_validator(mode="after")
    def validate_dates(self) -> "EventBase":
        if self.end_time is not None and self.start_time >= self.end_time:
            raise ValueError("End time must be after start time")
        return self

class EventCreate(EventBase):
    pass

class EventUpdate(EventBase):
    """Full replacement of an event's editable fields"""
    pass

class EventResponse(EventBase, TimestampSchema):
    id: int
    organizer: str
    organizer_id: int
    attendee_count: int
    seats_left: int

class EventListResponse(BaseSchema):
    items: List[EventResponse]
    total: int
