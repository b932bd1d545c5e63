from datetime import datetime, UTC
from typing import Any, Dict, Sequence
from sqlalchemy import select, update, delete, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.attendee import AttendeeRepository
from app.models.event import Event
from app.models.user import User
from app.schemas.event import EventCreate, EventUpdate

# Fields a full replace may write. The counter, the organizer and the creation
# timestamp are never taken from client input.
REPLACEABLE_FIELDS = frozenset({
    "title",
    "description",
    "location",
    "start_time",
    "end_time",
    "capacity",
})

class EventRepository:
    """SQLAlchemy-backed event store.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, event_id: int) -> Event | None:
        """Get an event by ID"""
        result = await self.db.execute(select(Event).where(Event.id == event_id))
        return result.scalar_one_or_none()

    async def list(self, skip: int = 0, limit: int = 100) -> Sequence[Event]:
        result = await self.db.execute(
            select(Event)
            .order_by(Event.start_time, Event.id)
            .offset(skip)
            .limit(limit)
        )
        return result.scalars().all()

    async def list_by_organizer(self, organizer_id: int) -> Sequence[Event]:
        """Get events organized by a user"""
        result = await self.db.execute(
            select(Event)
            .where(Event.organizer_id == organizer_id)
            .order_by(Event.start_time, Event.id)
        )
        return result.scalars().all()

    async def search(self, term: str) -> Sequence[Event]:
        """Case-insensitive substring search over title, description and location"""
        result = await self.db.execute(
            select(Event)
            .where(
                or_(
                    Event.title.icontains(term, autoescape=True),
                    Event.description.icontains(term, autoescape=True),
                    Event.location.icontains(term, autoescape=True),
                )
            )
            .order_by(Event.start_time, Event.id)
        )
        return result.scalars().all()

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(Event.id)))
        return result.scalar_one()

    async def create(self, event: Event) -> Event:
        self.db.add(event)
        await self.db.flush()
        await self.db.refresh(event)
        return event

    async def replace(self, event_id: int, fields: Dict[str, Any]) -> Event | None:
        """Replace the editable fields of an event.

        Written as a column-targeted UPDATE so that a replace racing with an
        admission cannot overwrite attendee_count with a stale value. Lowering
        capacity below the current count is allowed; the event then stays
        full until enough attendees withdraw. Returns None when the event is
        missing.
        """
        unknown = set(fields) - REPLACEABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be replaced: {', '.join(sorted(unknown))}")

        result = await self.db.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(**fields, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self.db.get(Event, event_id, populate_existing=True)

    async def delete(self, event_id: int) -> bool:
        """Delete an event and cascade to its attendees"""
        await AttendeeRepository(self.db).delete_by_event(event_id)
        result = await self.db.execute(
            delete(Event)
            .where(Event.id == event_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def try_increment_if_below_capacity(self, event_id: int) -> int | None:
        # Compare-and-increment: the guard is evaluated by the store at write time
        result = await self.db.execute(
            update(Event)
            .where(Event.id == event_id, Event.attendee_count < Event.capacity)
            .values(attendee_count=Event.attendee_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self._current_count(event_id)

    async def decrement_floor_zero(self, event_id: int) -> int | None:
        result = await self.db.execute(
            update(Event)
            .where(Event.id == event_id, Event.attendee_count > 0)
            .values(attendee_count=Event.attendee_count - 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self._current_count(event_id)

    async def _current_count(self, event_id: int) -> int:
        result = await self.db.execute(
            select(Event.attendee_count).where(Event.id == event_id)
        )
        return result.scalar_one()

def build_event(event_in: EventCreate, organizer: User) -> Event:
    """Create an Event instance owned by the given organizer"""
    return Event(
        **event_in.model_dump(),
        organizer_id=organizer.id,
        organizer=organizer.name,
        attendee_count=0
    )

def replacement_fields(event_in: EventUpdate) -> Dict[str, Any]:
    """Full-document replace: every editable field is written, unset ones as None"""
    return {field: getattr(event_in, field) for field in REPLACEABLE_FIELDS}
