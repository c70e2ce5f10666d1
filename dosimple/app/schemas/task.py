"""
Task Pydantic schemas.
Includes create/update/read variants, bulk payloads, statistics and
a filter schema for list endpoints.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, Field, field_validator

from app.models.enums import TaskPriority, TaskStatus
from app.models.task import (
    CATEGORY_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Task,
)
from app.schemas.pagination import normalize_page, normalize_page_size


def _as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDateTime = Annotated[datetime, AfterValidator(_as_utc)]


# ── Create ────────────────────────────────────────────────────────────────────

class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    priority: TaskPriority = TaskPriority.MEDIUM
    category: str = Field(min_length=1, max_length=CATEGORY_MAX_LENGTH)
    due_date: UtcDateTime | None = None
    assigned_to_user_id: int | None = None

    @field_validator("title", "category")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field must not be blank")
        return v


# ── Update ────────────────────────────────────────────────────────────────────

class TaskUpdate(BaseModel):
    title: str | None = Field(default=None, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    category: str | None = Field(default=None, max_length=CATEGORY_MAX_LENGTH)
    due_date: UtcDateTime | None = None
    assigned_to_user_id: int | None = None

    def changes(self) -> dict[str, Any]:
        """
        Fields the caller actually supplied with a usable value.
        Null and blank strings mean "keep the current value".
        """
        supplied: dict[str, Any] = {}
        for field, value in self.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            if isinstance(value, str):
                if not value.strip():
                    continue
                value = value.strip() if field != "description" else value
            supplied[field] = value
        return supplied


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


# ── Assign ────────────────────────────────────────────────────────────────────

class TaskAssign(BaseModel):
    user_id: int


# ── Bulk ──────────────────────────────────────────────────────────────────────

class BulkUpdateStatusRequest(BaseModel):
    task_ids: list[int] = Field(min_length=1)
    status: TaskStatus


class BulkOperationResult(BaseModel):
    message: str
    affected: int


# ── Read ──────────────────────────────────────────────────────────────────────

class TaskRead(BaseModel):
    id: int
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    category: str
    due_date: datetime | None
    image_url: str | None
    created_by_user_id: int
    created_by_user_name: str
    assigned_to_user_id: int | None
    assigned_to_user_name: str | None
    created_at: datetime
    updated_at: datetime | None

    @classmethod
    def from_task(cls, task: Task) -> "TaskRead":
        """Denormalise creator and assignee display names into the response."""
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            category=task.category,
            due_date=task.due_date,
            image_url=task.image_url,
            created_by_user_id=task.created_by_user_id,
            created_by_user_name=task.created_by.name if task.created_by else "",
            assigned_to_user_id=task.assigned_to_user_id,
            assigned_to_user_name=task.assignee.name if task.assignee else None,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


# ── Stats ─────────────────────────────────────────────────────────────────────

class TaskStats(BaseModel):
    total_tasks: int = 0
    pending_tasks: int = 0
    in_progress_tasks: int = 0
    completed_tasks: int = 0
    cancelled_tasks: int = 0
    overdue_tasks: int = 0
    due_this_week: int = 0


# ── Filter ────────────────────────────────────────────────────────────────────

class TaskFilter(BaseModel):
    """Query parameters for filtering task list endpoints."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    category: str | None = Field(default=None, max_length=CATEGORY_MAX_LENGTH)
    assigned_to_user_id: int | None = None
    created_by_user_id: int | None = None
    is_overdue: bool | None = None
    due_date_from: UtcDateTime | None = None
    due_date_to: UtcDateTime | None = None
    search: str | None = Field(default=None, max_length=200)
    page: int = 1
    size: int = 10

    @field_validator("category", "search")
    @classmethod
    def blank_is_absent(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("page")
    @classmethod
    def clamp_page(cls, v: int) -> int:
        return normalize_page(v)

    @field_validator("size")
    @classmethod
    def clamp_size(cls, v: int) -> int:
        return normalize_page_size(v)
