from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .base import Base, utcnow

def normalize_email(email: str) -> str:
    """Dedup key for registrations: addresses differing only in case are the same person."""
    return email.strip().lower()

class Attendee(Base):
    """A registration for an event. Created only by the admission service."""

    __tablename__ = "attendees"

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # Required fields
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    email_normalized: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Optional fields
    dietary_restrictions: Mapped[str | None] = mapped_column(String(500))
    special_requests: Mapped[str | None] = mapped_column(String(1000))

    # Relationships
    event: Mapped["Event"] = relationship(back_populates="attendees")

    # One registration per email per event; also serves the (event_id, email) lookup
    __table_args__ = (
        UniqueConstraint("event_id", "email_normalized", name="uq_attendee_event_email"),
    )

    def __repr__(self):
        return f"<Attendee(id={self.id}, event_id={self.event_id}, email={self.email})>"
