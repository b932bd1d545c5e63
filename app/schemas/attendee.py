from datetime import datetime
from pydantic import EmailStr, Field, field_serializer, field_validator
from .base import BaseSchema

class AttendeeCreate(BaseSchema):
    """Registration request body"""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=50)
    dietary_restrictions: str | None = Field(None, max_length=500)
    special_requests: str | None = Field(None, max_length=1000)

    @field_validator("name", "phone")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

class AttendeeResponse(BaseSchema):
    id: int
    event_id: int
    name: str
    email: str
    phone: str
    dietary_restrictions: str | None = None
    special_requests: str | None = None
    registered_at: datetime

    @field_serializer("registered_at")
    def _serialize_registered_at(self, dt: datetime) -> str:
        return self.serialize_datetime(dt)

class AttendeeListResponse(BaseSchema):
    items: list[AttendeeResponse]
    total: int

class RegistrationResponse(BaseSchema):
    """Result of a successful admission"""
    attendee: AttendeeResponse
    attendee_count: int
    message: str = "Successfully registered for event"

class WithdrawalResponse(BaseSchema):
    event_id: int
    attendee_id: int
    attendee_count: int
    message: str = "Registration withdrawn"

class RosterStatsResponse(BaseSchema):
    event_id: int
    capacity: int
    attendee_count: int
    roster_size: int
    seats_left: int
