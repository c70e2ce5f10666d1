"""
Task CRUD operations.
Extends CRUDBase with the scoped filter query, aggregate statistics and
the bulk statements used when a user is removed.
"""
from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.permissions import Principal
from app.crud.base import CRUDBase
from app.db.base import utcnow
from app.models.enums import TERMINAL_STATUSES, TaskStatus
from app.models.task import Task
from app.schemas.pagination import page_offset
from app.schemas.task import TaskFilter


def _scope_clause(principal: Principal, created_by_user_id: int | None):
    """
    Visibility restriction applied before any other filter.
    An explicit creator filter wins regardless of role; otherwise
    non-admins only see tasks they created or are assigned to.
    """
    if created_by_user_id is not None:
        return Task.created_by_user_id == created_by_user_id
    if principal.is_admin:
        return None
    return or_(
        Task.created_by_user_id == principal.user_id,
        Task.assigned_to_user_id == principal.user_id,
    )


def _overdue_clause(now: datetime):
    return (
        Task.due_date.is_not(None)
        & (Task.due_date < now)
        & Task.status.not_in(list(TERMINAL_STATUSES))
    )


class CRUDTask(CRUDBase[Task]):

    async def get_with_relations(self, db: AsyncSession, task_id: int) -> Task | None:
        """Fetch a task with creator and assignee eagerly loaded."""
        result = await db.execute(
            select(Task)
            .options(selectinload(Task.created_by), selectinload(Task.assignee))
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_with_filters(
        self,
        db: AsyncSession,
        *,
        filters: TaskFilter,
        principal: Principal,
    ) -> tuple[list[Task], int]:
        """
        Return (tasks, total) for one page of the caller's visible tasks.
        Total is counted after filtering and before pagination.
        """
        query = (
            select(Task)
            .options(selectinload(Task.created_by), selectinload(Task.assignee))
        )
        count_query = select(func.count()).select_from(Task)

        conditions = []
        scope = _scope_clause(principal, filters.created_by_user_id)
        if scope is not None:
            conditions.append(scope)

        if filters.status is not None:
            conditions.append(Task.status == filters.status)
        if filters.priority is not None:
            conditions.append(Task.priority == filters.priority)
        if filters.category:
            conditions.append(Task.category == filters.category)
        if filters.assigned_to_user_id is not None:
            conditions.append(Task.assigned_to_user_id == filters.assigned_to_user_id)
        if filters.is_overdue:
            conditions.append(_overdue_clause(utcnow()))
        if filters.due_date_from is not None:
            conditions.append(Task.due_date >= filters.due_date_from)
        if filters.due_date_to is not None:
            conditions.append(Task.due_date <= filters.due_date_to)
        if filters.search:
            term = filters.search
            conditions.append(
                or_(
                    Task.title.icontains(term, autoescape=True),
                    Task.description.icontains(term, autoescape=True),
                    Task.category.icontains(term, autoescape=True),
                )
            )

        for condition in conditions:
            query = query.where(condition)
            count_query = count_query.where(condition)

        total_result = await db.execute(count_query)
        total = total_result.scalar_one()

        query = (
            query.order_by(Task.created_at.desc(), Task.id.desc())
            .offset(page_offset(filters.page, filters.size))
            .limit(filters.size)
        )
        result = await db.execute(query)
        return list(result.scalars().all()), total

    # ── Aggregates ────────────────────────────────────────────────────────────

    async def count_by_status(
        self, db: AsyncSession, *, principal: Principal
    ) -> dict[TaskStatus, int]:
        query = select(Task.status, func.count(Task.id)).group_by(Task.status)
        scope = _scope_clause(principal, None)
        if scope is not None:
            query = query.where(scope)
        result = await db.execute(query)
        counts = {status: 0 for status in TaskStatus}
        for status, count in result.all():
            counts[TaskStatus(status)] = count
        return counts

    async def count_overdue(
        self, db: AsyncSession, *, principal: Principal, now: datetime
    ) -> int:
        query = select(func.count()).select_from(Task).where(_overdue_clause(now))
        scope = _scope_clause(principal, None)
        if scope is not None:
            query = query.where(scope)
        result = await db.execute(query)
        return result.scalar_one()

    async def count_due_within(
        self,
        db: AsyncSession,
        *,
        principal: Principal,
        now: datetime,
        window: timedelta,
    ) -> int:
        query = (
            select(func.count())
            .select_from(Task)
            .where(
                Task.due_date.is_not(None),
                Task.due_date >= now,
                Task.due_date <= now + window,
                Task.status.not_in(list(TERMINAL_STATUSES)),
            )
        )
        scope = _scope_clause(principal, None)
        if scope is not None:
            query = query.where(scope)
        result = await db.execute(query)
        return result.scalar_one()

    async def distinct_categories(
        self, db: AsyncSession, *, principal: Principal
    ) -> list[str]:
        query = (
            select(Task.category)
            .where(Task.category != "")
            .distinct()
            .order_by(Task.category)
        )
        scope = _scope_clause(principal, None)
        if scope is not None:
            query = query.where(scope)
        result = await db.execute(query)
        return list(result.scalars().all())

    # ── User removal ──────────────────────────────────────────────────────────

    async def delete_created_by(self, db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            delete(Task)
            .where(Task.created_by_user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def unassign_user(self, db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            update(Task)
            .where(Task.assigned_to_user_id == user_id)
            .values(assigned_to_user_id=None, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


crud_task = CRUDTask(Task)
