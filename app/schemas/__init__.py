from .base import BaseSchema, TimestampSchema
from .token import Token
from .user import (
    UserBase,
    UserCreate,
    UserUpdate,
    UserResponse,
    UserListResponse,
    AuthResponse,
)
from .event import (
    EventBase,
    EventCreate,
    EventUpdate,
    EventResponse,
    EventListResponse,
)
from .attendee import (
    AttendeeCreate,
    AttendeeResponse,
    AttendeeListResponse,
    RegistrationResponse,
    WithdrawalResponse,
    RosterStatsResponse,
)

__all__ = [
    "BaseSchema",
    "TimestampSchema",
    "Token",
    "UserBase",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "UserListResponse",
    "AuthResponse",
    "EventBase",
    "EventCreate",
    "EventUpdate",
    "EventResponse",
    "EventListResponse",
    "AttendeeCreate",
    "AttendeeResponse",
    "AttendeeListResponse",
    "RegistrationResponse",
    "WithdrawalResponse",
    "RosterStatsResponse",
]
