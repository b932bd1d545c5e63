from enum import Enum

class UserRole(str, Enum):
    """Enum for user roles in the system"""
    ADMIN = "Admin"
    ORGANIZER = "Organizer"
    GUEST = "Guest"

class EventAction(str, Enum):
    """Event actions that go through the ownership guard."""
    UPDATE = "update"
    DELETE = "delete"
    WITHDRAW = "withdraw"
    VIEW_STATS = "view_stats"
