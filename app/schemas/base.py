from datetime import datetime, UTC
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_serializer

class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def serialize_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        """Serialize datetime consistently across the application.

        SQLite hands back naive values; they are stored in UTC.
        """
        if dt is None:
            return None
        return dt.isoformat() if dt.tzinfo else dt.replace(tzinfo=UTC).isoformat()

class TimestampSchema(BaseSchema):
    """Schema with timestamp fields."""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_serializer("created_at", "updated_at")
    def _serialize_timestamps(self, dt: Optional[datetime]) -> Optional[str]:
        return self.serialize_datetime(dt)
