"""
User administration service.
Callers are admin-tier users; the role gate lives in the route dependencies.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, DataStoreException, NotFoundException
from app.crud.task import crud_task
from app.crud.user import crud_user
from app.db.base import utcnow
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.pagination import PaginatedResponse
from app.schemas.user import UserAdminUpdate, UserFilter, UserRead, UserStats

logger = logging.getLogger(__name__)


class UserService:

    async def list_users(
        self, db: AsyncSession, *, filters: UserFilter
    ) -> PaginatedResponse[UserRead]:
        users, total = await crud_user.list_users(db, filters=filters)
        return PaginatedResponse[UserRead](
            items=[UserRead.model_validate(user) for user in users],
            total=total,
            page=filters.page,
            size=filters.size,
        )

    async def get_user(self, db: AsyncSession, *, user_id: int) -> User:
        user = await crud_user.get(db, user_id)
        if user is None:
            raise NotFoundException("User", user_id)
        return user

    async def update_user(
        self, db: AsyncSession, *, user_id: int, user_in: UserAdminUpdate
    ) -> User:
        """
        Update name, email and verification flag.
        A new email must not belong to any other account.
        """
        user = await self.get_user(db, user_id=user_id)
        changes: dict = {}

        if user_in.name is not None and user_in.name.strip():
            changes["name"] = user_in.name.strip()

        if user_in.email is not None and user_in.email != user.email:
            if await crud_user.email_taken(db, user_in.email, exclude_user_id=user.id):
                raise ConflictException("A user with this email already exists")
            changes["email"] = user_in.email

        if user_in.is_email_verified is not None:
            changes["is_email_verified"] = user_in.is_email_verified
            if user_in.is_email_verified:
                user.clear_email_verification_token()

        if changes:
            user.touch()
            await crud_user.update(db, db_obj=user, obj_in=changes)
            logger.info("Updated user %s: %s", user_id, sorted(changes))
        return user

    async def update_role(
        self, db: AsyncSession, *, user_id: int, role: UserRole
    ) -> User:
        user = await self.get_user(db, user_id=user_id)
        previous = user.role
        user.touch()
        await crud_user.update(db, db_obj=user, obj_in={"role": role})
        logger.info(
            "Changed role of user %s from %s to %s", user_id, previous.value, role.value
        )
        return user

    async def verify_email(self, db: AsyncSession, *, user_id: int) -> User:
        """Mark the account verified without going through the emailed token."""
        user = await self.get_user(db, user_id=user_id)
        user.mark_email_verified()
        user.touch()
        await db.flush()
        logger.info("Email of user %s verified by an administrator", user_id)
        return user

    async def delete_user(self, db: AsyncSession, *, user_id: int) -> None:
        """
        Delete a user together with the tasks they created and unassign
        them from every other task. All three steps commit or none do.
        """
        user = await self.get_user(db, user_id=user_id)
        try:
            deleted = await crud_task.delete_created_by(db, user_id)
            unassigned = await crud_task.unassign_user(db, user_id)
            await crud_user.remove(db, db_obj=user)
        except SQLAlchemyError as exc:
            logger.exception("Failed to delete user %s", user_id)
            await db.rollback()
            raise DataStoreException("Failed to delete user") from exc

        logger.info(
            "Deleted user %s (%d created task(s) removed, %d task(s) unassigned)",
            user_id,
            deleted,
            unassigned,
        )

    async def get_stats(self, db: AsyncSession) -> UserStats:
        now = utcnow()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        verification = await crud_user.count_by_verification(db)
        return UserStats(
            total_users=await crud_user.get_count(db),
            total_admins=await crud_user.count_admins(db),
            verified_users=verification[True],
            unverified_users=verification[False],
            new_users_this_month=await crud_user.count_created_since(db, month_start),
        )


user_service = UserService()
