from typing import Any
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PermissionDenied, ResourceNotFound
from app.core.logging import users_logger
from app.core.security import get_current_user, require_roles
from app.crud import user as crud_user
from app.db.database import get_db
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.user import UserListResponse, UserResponse, UserUpdate

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Not authorized"},
        404: {"description": "User not found"},
        500: {"description": "Internal server error"}
    }
)

@router.get(
    "/",
    response_model=UserListResponse,
    summary="List users",
    description="List all users. Admin only."
)
async def list_users(
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_roles(UserRole.ADMIN))
) -> Any:
    users = await crud_user.get_users(db, skip=skip, limit=limit)
    total = (await db.execute(select(func.count(User.id)))).scalar_one()
    return {"items": users, "total": total}

@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user",
    responses={
        200: {
            "description": "User found",
            "content": {
                "application/json": {
                    "example": {
                        "id": 2,
                        "name": "Jane Doe",
                        "email": "jane@example.com",
                        "age": 30,
                        "role": "Organizer",
                        "is_active": True,
                        "created_at": "2024-03-19T15:00:00Z",
                        "updated_at": "2024-03-19T15:00:00Z"
                    }
                }
            }
        }
    }
)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> Any:
    user = await crud_user.get_user(db, user_id)
    if user is None:
        raise ResourceNotFound("User not found")
    return user

@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update user",
    description="""
    Update a user's profile.

    * Users may update themselves, Admins may update anyone
    * Only Admins may change a role
    * Passwords are not changed through this endpoint
    """
)
async def update_user(
    user_id: int,
    user_in: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> Any:
    if current_user.id != user_id and not current_user.is_admin:
        raise PermissionDenied("Not enough permissions")
    if user_in.role is not None and user_in.role != current_user.role and not current_user.is_admin:
        raise PermissionDenied("Only admins can change roles")

    user = await crud_user.get_user(db, user_id)
    if user is None:
        raise ResourceNotFound("User not found")

    if user_in.email is not None and user_in.email != user.email:
        if await crud_user.get_user_by_email(db, email=user_in.email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A user with this email already exists",
            )

    user = await crud_user.update_user(db, db_user=user, user_in=user_in)
    users_logger.info("User updated", extra={"user_id": current_user.id, "target_user_id": user.id})
    return user

@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete user",
    description="Delete a user. Admin only."
)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN))
) -> None:
    user = await crud_user.get_user(db, user_id)
    if user is None:
        raise ResourceNotFound("User not found")
    await crud_user.delete_user(db, db_user=user)
    users_logger.info("User deleted", extra={"user_id": current_user.id, "target_user_id": user_id})
