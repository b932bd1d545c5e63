from typing import List
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.attendee import Attendee, normalize_email

class AttendeeRepository:
    """SQLAlchemy-backed attendee store. Never commits."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, attendee_id: int) -> Attendee | None:
        result = await self.db.execute(select(Attendee).where(Attendee.id == attendee_id))
        return result.scalar_one_or_none()

    async def list_by_event(self, event_id: int) -> List[Attendee]:
        """Get all attendees of an event in registration order"""
        result = await self.db.execute(
            select(Attendee)
            .where(Attendee.event_id == event_id)
            .order_by(Attendee.registered_at, Attendee.id)
        )
        return list(result.scalars().all())

    async def get_by_event_and_email(self, event_id: int, email: str) -> Attendee | None:
        # Served by the (event_id, email_normalized) unique index
        result = await self.db.execute(
            select(Attendee).where(
                Attendee.event_id == event_id,
                Attendee.email_normalized == normalize_email(email)
            )
        )
        return result.scalar_one_or_none()

    async def count_by_event(self, event_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Attendee.id)).where(Attendee.event_id == event_id)
        )
        return result.scalar_one()

    async def create(self, attendee: Attendee) -> Attendee:
        """Insert an attendee. Raises IntegrityError on a duplicate (event, email)."""
        attendee.email_normalized = normalize_email(attendee.email)
        self.db.add(attendee)
        await self.db.flush()
        return attendee

    async def delete(self, attendee_id: int, event_id: int | None = None) -> bool:
        stmt = delete(Attendee).where(Attendee.id == attendee_id)
        if event_id is not None:
            stmt = stmt.where(Attendee.event_id == event_id)
        result = await self.db.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount == 1

    async def delete_by_event(self, event_id: int) -> int:
        result = await self.db.execute(
            delete(Attendee)
            .where(Attendee.event_id == event_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
