from datetime import datetime, UTC
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_password_hash
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate

async def get_user(db: AsyncSession, user_id: int) -> User | None:
    """Get a user by ID"""
    return await db.get(User, user_id)

async def get_user_by_email(db: AsyncSession, *, email: str) -> User | None:
    """Get a user by email"""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()

async def get_users(db: AsyncSession, skip: int = 0, limit: int = 100) -> Sequence[User]:
    result = await db.execute(select(User).order_by(User.id).offset(skip).limit(limit))
    return result.scalars().all()

async def create_user(db: AsyncSession, user_in: UserCreate) -> User:
    """Create a new user"""
    db_user = User(
        name=user_in.name,
        email=user_in.email,
        age=user_in.age,
        role=user_in.role,
        hashed_password=get_password_hash(user_in.password),
    )
    db.add(db_user)
    await db.commit()
    await db.refresh(db_user)
    return db_user

async def update_user(db: AsyncSession, *, db_user: User, user_in: UserUpdate) -> User:
    """Update a user's profile. Passwords are not changed here."""
    update_data = user_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_user, field, value)

    db_user.updated_at = datetime.now(UTC)
    await db.commit()
    await db.refresh(db_user)
    return db_user

async def delete_user(db: AsyncSession, *, db_user: User) -> None:
    """Delete a user. Their events keep the organizer reference."""
    await db.delete(db_user)
    await db.commit()
