from fastapi import HTTPException, status
from typing import Any

class PermissionDenied(HTTPException):
    """Exception raised when a user does not have permission to perform an action."""
    def __init__(self, detail: str = "Permission denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )

class ResourceNotFound(HTTPException):
    """Exception raised when a requested resource is not found."""
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )

class AuthenticationError(HTTPException):
    """Exception raised when authentication fails."""
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class CustomException(Exception):
    """Base class for custom exceptions."""
    reason: str = "Error"

    def __init__(
        self,
        detail: str | dict[str, Any] = "An error occurred",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    ) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)

# --- Admission errors ---

class AdmissionError(CustomException):
    """Base class for failures of a single admission or withdrawal attempt."""
    retryable: bool = False

class NotFound(AdmissionError):
    reason = "NotFound"

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail, status.HTTP_404_NOT_FOUND)

class EventNotFound(NotFound):
    def __init__(self, event_id: int):
        self.event_id = event_id
        super().__init__("Event not found")

class AttendeeNotFound(NotFound):
    def __init__(self, attendee_id: int):
        self.attendee_id = attendee_id
        super().__init__("Attendee not found")

class EventFull(AdmissionError):
    """Admitting another attendee would exceed the event's capacity."""
    reason = "EventFull"

    def __init__(self, event_id: int):
        self.event_id = event_id
        super().__init__("Event is full", status.HTTP_409_CONFLICT)

class DuplicateRegistration(AdmissionError):
    """The email is already registered for the event."""
    reason = "DuplicateRegistration"

    def __init__(self, event_id: int, email: str):
        self.event_id = event_id
        self.email = email
        super().__init__("You are already registered for this event", status.HTTP_409_CONFLICT)

class StoreUnavailable(AdmissionError):
    """The backing store failed; safe to retry the whole attempt."""
    reason = "StoreUnavailable"
    retryable = True

    def __init__(self, detail: str = "Storage is temporarily unavailable, please try again"):
        super().__init__(detail, status.HTTP_503_SERVICE_UNAVAILABLE)

class StoreTimeout(StoreUnavailable):
    reason = "Timeout"

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Storage did not respond within {timeout:g}s")

class InvariantViolation(AdmissionError):
    """The attendee counter and the attendee roster have diverged."""
    reason = "InvariantViolation"

    def __init__(self, event_id: int, attendee_count: int, roster_size: int):
        self.event_id = event_id
        self.attendee_count = attendee_count
        self.roster_size = roster_size
        super().__init__(
            f"Attendee counter ({attendee_count}) does not match roster size ({roster_size})",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
