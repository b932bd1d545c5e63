from datetime import datetime, UTC
from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# Convention for constraint naming to work well with alembic
convention = {
    "ix": "ix_%(column_0_label)s",  # Index
    "uq": "uq_%(table_name)s_%(column_0_name)s",  # Unique constraint
    "ck": "ck_%(table_name)s_%(constraint_name)s",  # Check constraint
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",  # Foreign key
    "pk": "pk_%(table_name)s"  # Primary key
}

# Create metadata with naming convention
metadata = MetaData(naming_convention=convention)

def utcnow() -> datetime:
    return datetime.now(UTC)

class Base(DeclarativeBase):
    """Base class for all database models"""
    metadata = metadata

    # Add created_at and updated_at to all models
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow
    )

    # Automatically convert table names to lowercase
    @declared_attr.directive
    def __tablename__(cls) -> str:
        return cls.__name__.lower()

