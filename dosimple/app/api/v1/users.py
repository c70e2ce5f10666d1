"""
User administration routes.
Every route requires an Admin or SuperAdmin caller.
"""
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import AdminUser, DBSession
from app.core.exceptions import BadRequestException
from app.models.enums import UserRole
from app.schemas.pagination import PaginatedResponse
from app.schemas.user import (
    UserAdminUpdate,
    UserFilter,
    UserRead,
    UserRoleUpdate,
    UserStats,
)
from app.services.user_service import user_service

router = APIRouter(prefix="/user", tags=["Users"])


def _user_filter_params(
    role: UserRole | None = Query(default=None),
    is_email_verified: bool | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1),
    size: int = Query(default=10),
) -> UserFilter:
    return UserFilter(
        role=role,
        is_email_verified=is_email_verified,
        search=search.strip() if search and search.strip() else None,
        page=page,
        size=size,
    )


@router.get(
    "",
    response_model=PaginatedResponse[UserRead],
    summary="List users (admin only)",
)
async def list_users(
    _: AdminUser,
    db: DBSession,
    filters: Annotated[UserFilter, Depends(_user_filter_params)],
) -> PaginatedResponse[UserRead]:
    return await user_service.list_users(db, filters=filters)


@router.get("/stats", response_model=UserStats, summary="User statistics (admin only)")
async def get_user_stats(_: AdminUser, db: DBSession) -> UserStats:
    return await user_service.get_stats(db)


@router.get("/{user_id}", response_model=UserRead, summary="Get a user by ID (admin only)")
async def get_user(user_id: int, _: AdminUser, db: DBSession) -> UserRead:
    user = await user_service.get_user(db, user_id=user_id)
    return UserRead.model_validate(user)


@router.put("/{user_id}", response_model=UserRead, summary="Update a user (admin only)")
async def update_user(
    user_id: int,
    user_in: UserAdminUpdate,
    _: AdminUser,
    db: DBSession,
) -> UserRead:
    user = await user_service.update_user(db, user_id=user_id, user_in=user_in)
    return UserRead.model_validate(user)


@router.patch(
    "/{user_id}/role",
    response_model=UserRead,
    summary="Change a user's role (admin only)",
)
async def update_user_role(
    user_id: int,
    body: UserRoleUpdate,
    _: AdminUser,
    db: DBSession,
) -> UserRead:
    user = await user_service.update_role(db, user_id=user_id, role=body.role)
    return UserRead.model_validate(user)


@router.patch(
    "/{user_id}/verify-email",
    response_model=UserRead,
    summary="Mark a user's email as verified (admin only)",
)
async def verify_user_email(user_id: int, _: AdminUser, db: DBSession) -> UserRead:
    user = await user_service.verify_email(db, user_id=user_id)
    return UserRead.model_validate(user)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a user with their tasks (admin only)",
)
async def delete_user(
    user_id: int,
    admin: AdminUser,
    db: DBSession,
) -> None:
    if user_id == admin.id:
        raise BadRequestException("You cannot delete your own account")
    await user_service.delete_user(db, user_id=user_id)
