from datetime import datetime
from typing import List
from sqlalchemy import String, DateTime, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .base import Base

class Event(Base):
    """Event with finite seating capacity.

    ``attendee_count`` is a denormalized counter that must always equal the
    number of attendee rows referencing the event. It is only ever changed
    through the conditional updates in ``app.crud.event.EventRepository``.
    """

    __tablename__ = "events"

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # Required fields
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    capacity: Mapped[int] = mapped_column(nullable=False)
    attendee_count: Mapped[int] = mapped_column(nullable=False, default=0)

    # Weak reference to the organizing user, no FK so events outlive their organizer
    organizer_id: Mapped[int] = mapped_column(nullable=False, index=True)
    organizer: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    # Optional fields
    description: Mapped[str | None] = mapped_column(String(1000))
    location: Mapped[str | None] = mapped_column(String(200))
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    attendees: Mapped[List["Attendee"]] = relationship(
        "Attendee",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("capacity >= 0", name="capacity_non_negative"),
        CheckConstraint("attendee_count >= 0", name="attendee_count_non_negative"),
        Index("ix_event_organizer_start", "organizer_id", "start_time"),
    )

    @property
    def is_full(self) -> bool:
        return self.attendee_count >= self.capacity

    @property
    def seats_left(self) -> int:
        return max(self.capacity - self.attendee_count, 0)

    def __repr__(self):
        return f"<Event(id={self.id}, title={self.title}, attendees={self.attendee_count}/{self.capacity})>"
