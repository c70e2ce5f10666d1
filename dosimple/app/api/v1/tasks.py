"""
Task routes.
CRUD, filtering and pagination, status changes, assignment, bulk operations
and per-caller statistics. Static paths are declared before /{task_id}.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from app.core.dependencies import CurrentPrincipal, DBSession
from app.models.enums import TaskPriority, TaskStatus
from app.schemas.pagination import PaginatedResponse
from app.schemas.task import (
    BulkOperationResult,
    BulkUpdateStatusRequest,
    TaskAssign,
    TaskCreate,
    TaskFilter,
    TaskRead,
    TaskStats,
    TaskStatusUpdate,
    TaskUpdate,
)
from app.services.image_service import ImageUpload
from app.services.task_service import task_service

router = APIRouter(prefix="/task", tags=["Tasks"])


def _task_filter_params(
    status: TaskStatus | None = Query(default=None),
    priority: TaskPriority | None = Query(default=None),
    category: str | None = Query(default=None, max_length=100),
    assigned_to_user_id: int | None = Query(default=None),
    created_by_user_id: int | None = Query(default=None),
    is_overdue: bool | None = Query(default=None),
    due_date_from: datetime | None = Query(default=None),
    due_date_to: datetime | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1),
    size: int = Query(default=10),
) -> TaskFilter:
    return TaskFilter(
        status=status,
        priority=priority,
        category=category,
        assigned_to_user_id=assigned_to_user_id,
        created_by_user_id=created_by_user_id,
        is_overdue=is_overdue,
        due_date_from=due_date_from,
        due_date_to=due_date_to,
        search=search,
        page=page,
        size=size,
    )


@router.get(
    "",
    response_model=PaginatedResponse[TaskRead],
    summary="List tasks with filters and pagination",
)
async def list_tasks(
    principal: CurrentPrincipal,
    db: DBSession,
    filters: Annotated[TaskFilter, Depends(_task_filter_params)],
) -> PaginatedResponse[TaskRead]:
    return await task_service.list_tasks(db, filters=filters, principal=principal)


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new task, optionally with an image",
)
async def create_task(
    principal: CurrentPrincipal,
    db: DBSession,
    title: str = Form(...),
    category: str = Form(...),
    description: str = Form(default=""),
    priority: str = Form(default=TaskPriority.MEDIUM.value),
    due_date: str | None = Form(default=None),
    assigned_to_user_id: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
) -> TaskRead:
    try:
        task_in = TaskCreate(
            title=title,
            category=category,
            description=description,
            priority=priority,  # type: ignore[arg-type]
            due_date=due_date or None,  # type: ignore[arg-type]
            assigned_to_user_id=assigned_to_user_id or None,  # type: ignore[arg-type]
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors())

    upload = None
    if image is not None and image.filename:
        upload = ImageUpload(
            filename=image.filename,
            content_type=image.content_type or "",
            content=await image.read(),
        )

    task = await task_service.create_task(
        db, task_in=task_in, principal=principal, image=upload
    )
    return TaskRead.from_task(task)


@router.get("/stats", response_model=TaskStats, summary="Task counts visible to the caller")
async def get_stats(principal: CurrentPrincipal, db: DBSession) -> TaskStats:
    return await task_service.get_stats(db, principal=principal)


@router.get(
    "/categories",
    response_model=list[str],
    summary="Distinct categories of the caller's visible tasks",
)
async def get_categories(principal: CurrentPrincipal, db: DBSession) -> list[str]:
    return await task_service.get_categories(db, principal=principal)


@router.get(
    "/my-assigned",
    response_model=PaginatedResponse[TaskRead],
    summary="Tasks assigned to the caller",
)
async def my_assigned_tasks(
    principal: CurrentPrincipal,
    db: DBSession,
    status: TaskStatus | None = Query(default=None),
    page: int = Query(default=1),
    size: int = Query(default=10),
) -> PaginatedResponse[TaskRead]:
    filters = TaskFilter(
        assigned_to_user_id=principal.user_id, status=status, page=page, size=size
    )
    return await task_service.list_tasks(db, filters=filters, principal=principal)


@router.get(
    "/my-created",
    response_model=PaginatedResponse[TaskRead],
    summary="Tasks created by the caller",
)
async def my_created_tasks(
    principal: CurrentPrincipal,
    db: DBSession,
    status: TaskStatus | None = Query(default=None),
    page: int = Query(default=1),
    size: int = Query(default=10),
) -> PaginatedResponse[TaskRead]:
    filters = TaskFilter(
        created_by_user_id=principal.user_id, status=status, page=page, size=size
    )
    return await task_service.list_tasks(db, filters=filters, principal=principal)


@router.get(
    "/overdue",
    response_model=PaginatedResponse[TaskRead],
    summary="Overdue tasks visible to the caller",
)
async def overdue_tasks(
    principal: CurrentPrincipal,
    db: DBSession,
    page: int = Query(default=1),
    size: int = Query(default=10),
) -> PaginatedResponse[TaskRead]:
    filters = TaskFilter(is_overdue=True, page=page, size=size)
    return await task_service.list_tasks(db, filters=filters, principal=principal)


@router.post(
    "/bulk-delete",
    response_model=BulkOperationResult,
    summary="Delete several tasks; ones the caller may not delete are skipped",
)
async def bulk_delete(
    principal: CurrentPrincipal,
    db: DBSession,
    task_ids: list[int] = Body(...),
) -> BulkOperationResult:
    return await task_service.bulk_delete(db, task_ids=task_ids, principal=principal)


@router.post(
    "/bulk-update-status",
    response_model=BulkOperationResult,
    summary="Set the status of several tasks; inaccessible ones are skipped",
)
async def bulk_update_status(
    body: BulkUpdateStatusRequest,
    principal: CurrentPrincipal,
    db: DBSession,
) -> BulkOperationResult:
    return await task_service.bulk_update_status(
        db, task_ids=body.task_ids, status=body.status, principal=principal
    )


@router.get("/{task_id}", response_model=TaskRead, summary="Get a task by ID")
async def get_task(
    task_id: int,
    principal: CurrentPrincipal,
    db: DBSession,
) -> TaskRead:
    task = await task_service.get_task(db, task_id=task_id, principal=principal)
    return TaskRead.from_task(task)


@router.put("/{task_id}", response_model=TaskRead, summary="Update a task")
async def update_task(
    task_id: int,
    task_in: TaskUpdate,
    principal: CurrentPrincipal,
    db: DBSession,
) -> TaskRead:
    task = await task_service.update_task(
        db, task_id=task_id, task_in=task_in, principal=principal
    )
    return TaskRead.from_task(task)


@router.patch("/{task_id}/status", response_model=TaskRead, summary="Change task status")
async def update_task_status(
    task_id: int,
    body: TaskStatusUpdate,
    principal: CurrentPrincipal,
    db: DBSession,
) -> TaskRead:
    task = await task_service.update_status(
        db, task_id=task_id, status=body.status, principal=principal
    )
    return TaskRead.from_task(task)


@router.put("/{task_id}/assign", response_model=TaskRead, summary="Assign a task to a user")
async def assign_task(
    task_id: int,
    body: TaskAssign,
    principal: CurrentPrincipal,
    db: DBSession,
) -> TaskRead:
    task = await task_service.assign_task(
        db, task_id=task_id, assignee_id=body.user_id, principal=principal
    )
    return TaskRead.from_task(task)


@router.put("/{task_id}/unassign", response_model=TaskRead, summary="Remove the assignee")
async def unassign_task(
    task_id: int,
    principal: CurrentPrincipal,
    db: DBSession,
) -> TaskRead:
    task = await task_service.unassign_task(db, task_id=task_id, principal=principal)
    return TaskRead.from_task(task)


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Permanently delete a task",
)
async def delete_task(
    task_id: int,
    principal: CurrentPrincipal,
    db: DBSession,
) -> None:
    await task_service.delete_task(db, task_id=task_id, principal=principal)
