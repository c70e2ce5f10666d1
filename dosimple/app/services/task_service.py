"""
Task business logic service.
Every operation is gated by the authorization predicate in
app.core.permissions; a denial is reported exactly like a missing task.
"""
from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BadRequestException,
    NotFoundException,
    ReferencedUserNotFoundException,
)
from app.core.permissions import Principal, TaskAction, can_perform
from app.crud.task import crud_task
from app.crud.user import crud_user
from app.db.base import utcnow
from app.models.enums import TaskStatus
from app.models.task import Task
from app.schemas.pagination import PaginatedResponse
from app.schemas.task import (
    BulkOperationResult,
    TaskCreate,
    TaskFilter,
    TaskRead,
    TaskStats,
    TaskUpdate,
)
from app.services.image_service import ImageUpload, image_service

logger = logging.getLogger(__name__)

DUE_SOON_WINDOW = timedelta(days=7)


def _not_found(task_id: int) -> NotFoundException:
    return NotFoundException(
        "Task",
        detail=f"Task with id '{task_id}' not found or you don't have access",
    )


class TaskService:

    async def create_task(
        self,
        db: AsyncSession,
        *,
        task_in: TaskCreate,
        principal: Principal,
        image: ImageUpload | None = None,
    ) -> Task:
        """
        Create a task owned by the caller.
        Status always starts as Pending. A referenced assignee must exist.
        The optional image is validated up front; a failed upload leaves
        the task without an image instead of failing the request.
        """
        if image is not None:
            image_service.validate(image)
        if task_in.assigned_to_user_id is not None:
            await self._ensure_user_exists(db, task_in.assigned_to_user_id)

        image_url = None
        if image is not None:
            image_url = await image_service.upload(image)

        task = await crud_task.add(
            db,
            Task(
                title=task_in.title,
                description=task_in.description,
                status=TaskStatus.PENDING,
                priority=task_in.priority,
                category=task_in.category,
                due_date=task_in.due_date,
                image_url=image_url,
                created_by_user_id=principal.user_id,
                assigned_to_user_id=task_in.assigned_to_user_id,
            ),
        )
        logger.info("User %s created task %s", principal.user_id, task.id)
        return await self._reload(db, task.id)

    async def get_task(
        self,
        db: AsyncSession,
        *,
        task_id: int,
        principal: Principal,
    ) -> Task:
        return await self._get_authorized(db, task_id, principal, TaskAction.READ)

    async def list_tasks(
        self,
        db: AsyncSession,
        *,
        filters: TaskFilter,
        principal: Principal,
    ) -> PaginatedResponse[TaskRead]:
        tasks, total = await crud_task.list_with_filters(
            db, filters=filters, principal=principal
        )
        return PaginatedResponse[TaskRead](
            items=[TaskRead.from_task(task) for task in tasks],
            total=total,
            page=filters.page,
            size=filters.size,
        )

    async def update_task(
        self,
        db: AsyncSession,
        *,
        task_id: int,
        task_in: TaskUpdate,
        principal: Principal,
    ) -> Task:
        """
        Apply the supplied fields only. The assignee reference is checked
        before anything is written so a bad id leaves the task untouched.
        """
        task = await self._get_authorized(db, task_id, principal, TaskAction.UPDATE)

        changes = task_in.changes()
        if "assigned_to_user_id" in changes:
            await self._ensure_user_exists(db, changes["assigned_to_user_id"])

        if changes:
            task.touch()
            await crud_task.update(db, db_obj=task, obj_in=changes)
            logger.info(
                "User %s updated task %s: %s",
                principal.user_id,
                task_id,
                sorted(changes),
            )
        return await self._reload(db, task_id)

    async def update_status(
        self,
        db: AsyncSession,
        *,
        task_id: int,
        status: TaskStatus,
        principal: Principal,
    ) -> Task:
        task = await self._get_authorized(
            db, task_id, principal, TaskAction.UPDATE_STATUS
        )
        task.touch()
        await crud_task.update(db, db_obj=task, obj_in={"status": status})
        logger.info(
            "User %s set task %s status to %s", principal.user_id, task_id, status.value
        )
        return await self._reload(db, task_id)

    async def assign_task(
        self,
        db: AsyncSession,
        *,
        task_id: int,
        assignee_id: int,
        principal: Principal,
    ) -> Task:
        """Assign (or reassign) a task. Only its creator or an admin may do this."""
        task = await self._get_authorized(db, task_id, principal, TaskAction.ASSIGN)
        await self._ensure_user_exists(db, assignee_id)

        task.touch()
        await crud_task.update(db, db_obj=task, obj_in={"assigned_to_user_id": assignee_id})
        logger.info(
            "User %s assigned task %s to user %s", principal.user_id, task_id, assignee_id
        )
        return await self._reload(db, task_id)

    async def unassign_task(
        self,
        db: AsyncSession,
        *,
        task_id: int,
        principal: Principal,
    ) -> Task:
        task = await self._get_authorized(db, task_id, principal, TaskAction.UNASSIGN)
        task.touch()
        await crud_task.update(db, db_obj=task, obj_in={"assigned_to_user_id": None})
        logger.info("User %s unassigned task %s", principal.user_id, task_id)
        return await self._reload(db, task_id)

    async def delete_task(
        self,
        db: AsyncSession,
        *,
        task_id: int,
        principal: Principal,
    ) -> None:
        """Hard-delete a task. Only its creator or an admin may do this."""
        task = await self._get_authorized(db, task_id, principal, TaskAction.DELETE)
        await crud_task.remove(db, db_obj=task)
        logger.info("User %s deleted task %s", principal.user_id, task_id)

    # ── Bulk operations ───────────────────────────────────────────────────────

    async def bulk_delete(
        self,
        db: AsyncSession,
        *,
        task_ids: list[int],
        principal: Principal,
    ) -> BulkOperationResult:
        """
        Delete every listed task the caller may delete; the rest are
        skipped silently. Fails only when nothing is left to delete.
        """
        tasks = await self._authorized_subset(db, task_ids, principal, TaskAction.DELETE)
        for task in tasks:
            await db.delete(task)
        await db.flush()

        logger.info(
            "User %s bulk-deleted %d of %d requested tasks",
            principal.user_id,
            len(tasks),
            len(set(task_ids)),
        )
        return BulkOperationResult(
            message=f"{len(tasks)} task(s) deleted successfully",
            affected=len(tasks),
        )

    async def bulk_update_status(
        self,
        db: AsyncSession,
        *,
        task_ids: list[int],
        status: TaskStatus,
        principal: Principal,
    ) -> BulkOperationResult:
        """Same partial-success rule as bulk_delete, using the status-update tier."""
        tasks = await self._authorized_subset(
            db, task_ids, principal, TaskAction.UPDATE_STATUS
        )
        now = utcnow()
        for task in tasks:
            task.status = status
            task.updated_at = now
        await db.flush()

        logger.info(
            "User %s set status %s on %d of %d requested tasks",
            principal.user_id,
            status.value,
            len(tasks),
            len(set(task_ids)),
        )
        return BulkOperationResult(
            message=f"{len(tasks)} task(s) updated to {status.value}",
            affected=len(tasks),
        )

    # ── Aggregates ────────────────────────────────────────────────────────────

    async def get_stats(self, db: AsyncSession, *, principal: Principal) -> TaskStats:
        now = utcnow()
        by_status = await crud_task.count_by_status(db, principal=principal)
        return TaskStats(
            total_tasks=sum(by_status.values()),
            pending_tasks=by_status[TaskStatus.PENDING],
            in_progress_tasks=by_status[TaskStatus.IN_PROGRESS],
            completed_tasks=by_status[TaskStatus.COMPLETED],
            cancelled_tasks=by_status[TaskStatus.CANCELLED],
            overdue_tasks=await crud_task.count_overdue(db, principal=principal, now=now),
            due_this_week=await crud_task.count_due_within(
                db, principal=principal, now=now, window=DUE_SOON_WINDOW
            ),
        )

    async def get_categories(self, db: AsyncSession, *, principal: Principal) -> list[str]:
        return await crud_task.distinct_categories(db, principal=principal)

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _get_authorized(
        self,
        db: AsyncSession,
        task_id: int,
        principal: Principal,
        action: TaskAction,
    ) -> Task:
        task = await crud_task.get_with_relations(db, task_id)
        if task is None or not can_perform(principal, task, action):
            raise _not_found(task_id)
        return task

    async def _authorized_subset(
        self,
        db: AsyncSession,
        task_ids: list[int],
        principal: Principal,
        action: TaskAction,
    ) -> list[Task]:
        tasks = await crud_task.get_many(db, task_ids)
        allowed = [task for task in tasks if can_perform(principal, task, action)]
        if not allowed:
            raise BadRequestException(
                "No tasks found or you don't have permission to modify them"
            )
        return allowed

    async def _ensure_user_exists(self, db: AsyncSession, user_id: int) -> None:
        if await crud_user.get(db, user_id) is None:
            raise ReferencedUserNotFoundException(user_id)

    async def _reload(self, db: AsyncSession, task_id: int) -> Task:
        task = await crud_task.get_with_relations(db, task_id)
        if task is None:
            raise _not_found(task_id)
        return task


task_service = TaskService()
