from datetime import datetime, timedelta, UTC
from typing import Any, Callable, Tuple
from passlib.context import CryptContext
from jose import jwt, JWTError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import AuthenticationError, PermissionDenied
from app.db.database import get_db
from app.models.enums import UserRole
from app.models.user import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False)

def _token_claims(user: User) -> dict[str, Any]:
    return {"sub": str(user.id), "role": user.role.value}

def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=15)
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )

def create_refresh_token(data: dict[str, Any]) -> str:
    """Create a JWT refresh token"""
    to_encode = data.copy()
    expire = datetime.now(UTC) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )

def create_token_pair(user: User) -> Tuple[str, str]:
    """Create both access and refresh tokens for a user"""
    data = _token_claims(user)
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(data, expires_delta=access_token_expires)
    refresh_token = create_refresh_token(data)
    return access_token, refresh_token

def verify_token(token: str, token_type: str = "access") -> dict[str, Any]:
    """Verify and decode a JWT token"""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise AuthenticationError()
    if payload.get("type") != token_type:
        raise AuthenticationError(f"Invalid token type. Expected {token_type} token.")
    return payload

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)

async def get_user_from_token(db: AsyncSession, token: str, token_type: str = "access") -> User:
    """Resolve the user a token was issued to"""
    payload = verify_token(token, token_type)
    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise AuthenticationError()

    # Import get_user function here to avoid circular imports
    from app.crud.user import get_user

    user = await get_user(db, user_id)
    if user is None:
        raise AuthenticationError()
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    return user

async def get_current_user(
    db: AsyncSession = Depends(get_db),
    token: str = Depends(oauth2_scheme)
) -> User:
    """Dependency to get the current authenticated user"""
    return await get_user_from_token(db, token)

async def get_current_user_optional(
    db: AsyncSession = Depends(get_db),
    token: str | None = Depends(optional_oauth2_scheme)
) -> User | None:
    """Like get_current_user, but anonymous callers resolve to None.

    A token that is present but invalid is still rejected.
    """
    if token is None:
        return None
    return await get_user_from_token(db, token)

def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory restricting an endpoint to the given roles"""
    async def _require(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise PermissionDenied("Not enough permissions")
        return current_user
    return _require
