from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status, Header
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import auth_logger
from app.core.security import (
    create_token_pair,
    get_user_from_token,
    verify_password,
    get_current_user
)
from app.db.database import get_db
from app.schemas.token import Token
from app.schemas.user import AuthResponse, UserCreate, UserResponse
from app.crud.user import create_user, get_user_by_email
from app.models.enums import UserRole
from app.models.user import User

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Authentication failed"},
        500: {"description": "Internal server error"}
    }
)

@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
    summary="Register new user",
    description="""
    Register a new user and sign them in.

    The endpoint performs the following:
    * Validates the email is not already registered
    * Rejects self-registration as Admin
    * Securely hashes the password
    * Returns a token pair together with the created user
    """,
    responses={
        201: {
            "description": "User successfully created",
            "content": {
                "application/json": {
                    "example": {
                        "access_token": "eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1...",
                        "refresh_token": "eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1...",
                        "token_type": "bearer",
                        "user": {
                            "id": 1,
                            "name": "Jane Doe",
                            "email": "jane@example.com",
                            "age": 30,
                            "role": "Organizer",
                            "is_active": True
                        }
                    }
                }
            }
        },
        400: {
            "description": "Email already registered or role not allowed",
            "content": {
                "application/json": {
                    "example": {"detail": "A user with this email already exists"}
                }
            }
        }
    }
)
async def register(
    *,
    db: AsyncSession = Depends(get_db),
    user_in: UserCreate
) -> Any:
    """
    Register a new user with the following information:

    - **name**: Display name
    - **email**: Unique email address
    - **password**: Strong password (min 8 characters)
    - **age**: Optional age
    - **role**: Organizer or Guest (default Guest)
    """
    if user_in.role == UserRole.ADMIN and not settings.ALLOW_ADMIN_SELF_REGISTRATION:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot self-register as Admin",
        )

    user = await get_user_by_email(db, email=user_in.email)
    if user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A user with this email already exists",
        )

    user = await create_user(db, user_in)
    auth_logger.info("User registered", extra={"user_id": user.id})

    access_token, refresh_token = create_token_pair(user)
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user": UserResponse.model_validate(user)
    }

@router.post(
    "/login",
    response_model=Token,
    summary="Login for access token",
    description="""
    OAuth2 compatible token login endpoint. Authenticates a user and returns an access token
    and refresh token for future requests.

    The access token is valid for a limited time, while the refresh token can be used
    to obtain new access tokens without re-authentication.
    """,
    responses={
        200: {
            "description": "Successful login",
            "content": {
                "application/json": {
                    "example": {
                        "access_token": "eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1...",
                        "refresh_token": "eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1...",
                        "token_type": "bearer"
                    }
                }
            }
        },
        401: {
            "description": "Invalid credentials",
            "content": {
                "application/json": {
                    "example": {"detail": "Incorrect email or password"}
                }
            }
        }
    }
)
async def login(
    db: AsyncSession = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends()
) -> Any:
    """
    Authenticate user and return JWT token pair.

    - **username**: Email address of the user (used as username)
    - **password**: User's password
    """
    user = await get_user_by_email(db, email=form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        auth_logger.warning("Failed login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    access_token, refresh_token = create_token_pair(user)
    auth_logger.info("User logged in", extra={"user_id": user.id})
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer"
    }

@router.post(
    "/refresh",
    response_model=Token,
    summary="Refresh access token",
    description="""
    Get a new access token using a valid refresh token.

    The refresh token must be provided in the Authorization header
    with the Bearer prefix.
    """,
    responses={
        401: {
            "description": "Invalid or expired refresh token",
            "content": {
                "application/json": {
                    "example": {"detail": "Could not validate credentials"}
                }
            }
        }
    }
)
async def refresh_token(
    db: AsyncSession = Depends(get_db),
    authorization: str = Header(..., description="The refresh token obtained during login, with Bearer prefix")
) -> Any:
    """
    Exchange a refresh token for a new token pair.
    """
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await get_user_from_token(db, token, token_type="refresh")
    access_token, new_refresh_token = create_token_pair(user)
    return {
        "access_token": access_token,
        "refresh_token": new_refresh_token,
        "token_type": "bearer"
    }

@router.get(
    "/verify",
    response_model=UserResponse,
    summary="Verify access token",
    description="Return the user the presented access token belongs to."
)
async def verify(current_user: User = Depends(get_current_user)) -> Any:
    return current_user
