from .base import Base
from .enums import UserRole, EventAction
from .user import User
from .event import Event
from .attendee import Attendee, normalize_email

# For convenience, export all models
__all__ = [
    "Base",
    "User",
    "UserRole",
    "EventAction",
    "Event",
    "Attendee",
    "normalize_email",
]
