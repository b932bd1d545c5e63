from typing import Any

from app.core.exceptions import PermissionDenied
from app.models.enums import EventAction, UserRole

def authorize(action: EventAction, event: Any, caller_id: int | None, caller_role: UserRole | str | None) -> bool:
    """Ownership guard for event mutations.

    Admins may perform any guarded action; everyone else only on events they
    organize. Reading and registering are not guarded and must not be passed here.
    """
    if not isinstance(action, EventAction):
        raise ValueError(f"Action {action!r} is not guarded by event ownership")
    if caller_role == UserRole.ADMIN:
        return True
    return caller_id is not None and event.organizer_id == caller_id

def ensure_authorized(action: EventAction, event: Any, user: Any) -> None:
    """Raise PermissionDenied unless the user may perform the action on the event"""
    if not authorize(action, event, user.id, user.role):
        raise PermissionDenied("Not enough permissions")
