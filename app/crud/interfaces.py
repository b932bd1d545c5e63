"""Repository contracts (ports) consumed by the admission service.

These are Protocols for structural typing: the SQLAlchemy repositories in
``app.crud.event`` and ``app.crud.attendee`` satisfy them without inheriting,
and tests may pass any object with the same methods.

The two conditional counter operations on ``EventRepositoryProtocol`` are the
load-bearing part of the contract. Each must be a single atomic statement
against the store, never a read followed by a separate write.
"""

from typing import Any, Callable, Dict, List, Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.attendee import Attendee
from app.models.event import Event


class EventRepositoryProtocol(Protocol):
    """Durable store of event records."""

    async def get(self, event_id: int) -> Event | None:
        """Return the event, or None if it does not exist."""
        ...

    async def list(self, skip: int = 0, limit: int = 100) -> Sequence[Event]:
        ...

    async def list_by_organizer(self, organizer_id: int) -> Sequence[Event]:
        ...

    async def search(self, term: str) -> Sequence[Event]:
        """Case-insensitive substring match on title, description and location."""
        ...

    async def count(self) -> int:
        ...

    async def create(self, event: Event) -> Event:
        ...

    async def replace(self, event_id: int, fields: Dict[str, Any]) -> Event | None:
        """Replace the editable fields of an event, leaving its counter untouched."""
        ...

    async def delete(self, event_id: int) -> bool:
        """Delete an event together with its attendees."""
        ...

    async def try_increment_if_below_capacity(self, event_id: int) -> int | None:
        """Add one to attendee_count only while it is below capacity.

        Returns the new count, or None when the guard failed (event full or
        missing) and nothing was written.
        """
        ...

    async def decrement_floor_zero(self, event_id: int) -> int | None:
        """Subtract one from attendee_count only while it is above zero.

        Returns the new count, or None when nothing was written.
        """
        ...


class AttendeeRepositoryProtocol(Protocol):
    """Durable store of attendee records keyed by event."""

    async def get(self, attendee_id: int) -> Attendee | None:
        ...

    async def list_by_event(self, event_id: int) -> List[Attendee]:
        ...

    async def get_by_event_and_email(self, event_id: int, email: str) -> Attendee | None:
        """Indexed lookup; email comparison is case-insensitive."""
        ...

    async def count_by_event(self, event_id: int) -> int:
        ...

    async def create(self, attendee: Attendee) -> Attendee:
        ...

    async def delete(self, attendee_id: int, event_id: int | None = None) -> bool:
        """Delete one attendee. Returns False if no row matched."""
        ...

    async def delete_by_event(self, event_id: int) -> int:
        ...


# Factories the admission service uses to bind repositories to its own
# per-attempt session.
EventRepositoryFactory = Callable[[AsyncSession], EventRepositoryProtocol]
AttendeeRepositoryFactory = Callable[[AsyncSession], AttendeeRepositoryProtocol]
