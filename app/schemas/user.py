from pydantic import EmailStr, Field
from app.models.enums import UserRole
from .base import BaseSchema, TimestampSchema
from .token import Token

class UserBase(BaseSchema):
    """Base schema for user data"""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    age: int | None = Field(None, ge=0, le=150)

class UserCreate(UserBase):
    """Schema for user registration"""
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.GUEST

class UserUpdate(BaseSchema):
    """Schema for profile update; the password is not changed through this schema"""
    name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    age: int | None = Field(None, ge=0, le=150)
    role: UserRole | None = None

class UserResponse(UserBase, TimestampSchema):
    """Schema for user response data. Never carries the password hash."""
    id: int
    role: UserRole
    is_active: bool = True

class UserListResponse(BaseSchema):
    items: list[UserResponse]
    total: int

class AuthResponse(Token):
    """Token pair plus the authenticated user"""
    user: UserResponse
