"""
User CRUD operations.
Extends CRUDBase with lookups by email and single-use token, the admin
list query and aggregate statistics.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.pagination import page_offset
from app.schemas.user import UserFilter


class CRUDUser(CRUDBase[User]):

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def email_taken(
        self, db: AsyncSession, email: str, *, exclude_user_id: int | None = None
    ) -> bool:
        query = select(func.count()).select_from(User).where(
            func.lower(User.email) == email.strip().lower()
        )
        if exclude_user_id is not None:
            query = query.where(User.id != exclude_user_id)
        result = await db.execute(query)
        return result.scalar_one() > 0

    async def get_by_verification_token_hash(
        self, db: AsyncSession, token_hash: str
    ) -> User | None:
        result = await db.execute(
            select(User).where(User.email_verification_token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def get_by_reset_token_hash(
        self, db: AsyncSession, token_hash: str
    ) -> User | None:
        result = await db.execute(
            select(User).where(User.password_reset_token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def list_users(
        self,
        db: AsyncSession,
        *,
        filters: UserFilter,
    ) -> tuple[list[User], int]:
        query = select(User)
        count_query = select(func.count()).select_from(User)

        conditions = []
        if filters.role is not None:
            conditions.append(User.role == filters.role)
        if filters.is_email_verified is not None:
            conditions.append(User.is_email_verified.is_(filters.is_email_verified))
        if filters.search:
            term = filters.search
            conditions.append(
                or_(
                    User.name.icontains(term, autoescape=True),
                    User.email.icontains(term, autoescape=True),
                )
            )

        for condition in conditions:
            query = query.where(condition)
            count_query = count_query.where(condition)

        total_result = await db.execute(count_query)
        total = total_result.scalar_one()

        result = await db.execute(
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset(page_offset(filters.page, filters.size))
            .limit(filters.size)
        )
        return list(result.scalars().all()), total

    async def count_admins(self, db: AsyncSession) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(User)
            .where(User.role.in_([UserRole.ADMIN, UserRole.SUPER_ADMIN]))
        )
        return result.scalar_one()

    async def count_by_verification(self, db: AsyncSession) -> dict[bool, int]:
        result = await db.execute(
            select(User.is_email_verified, func.count(User.id)).group_by(
                User.is_email_verified
            )
        )
        counts = {True: 0, False: 0}
        for verified, count in result.all():
            counts[bool(verified)] = count
        return counts

    async def count_created_since(self, db: AsyncSession, since: datetime) -> int:
        result = await db.execute(
            select(func.count()).select_from(User).where(User.created_at >= since)
        )
        return result.scalar_one()


crud_user = CRUDUser(User)
