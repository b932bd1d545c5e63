from sqlalchemy import String, Enum as SQLAEnum
from sqlalchemy.orm import Mapped, mapped_column
from .base import Base
from .enums import UserRole

class User(Base):
    """User model for authentication and authorization"""

    __tablename__ = "user"

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # Required fields
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False
    )
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False
    )
    role: Mapped[UserRole] = mapped_column(
        SQLAEnum(UserRole, values_callable=lambda roles: [r.value for r in roles]),
        default=UserRole.GUEST,
        nullable=False
    )

    # Optional fields
    age: Mapped[int | None] = mapped_column()
    is_active: Mapped[bool] = mapped_column(default=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"
