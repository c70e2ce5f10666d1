"""
Task ORM model.
Central entity of DoSimple. Creator and assignee are many-to-one
references to users; cascading on user deletion is done by the
user administration service, not by the database.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin
from app.models.enums import TaskPriority, TaskStatus
from app.models.user import User

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
CATEGORY_MAX_LENGTH = 100


def _labels(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


class Task(TimestampMixin, Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str] = mapped_column(
        String(DESCRIPTION_MAX_LENGTH), nullable=False, default=""
    )
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, name="task_status_enum", values_callable=_labels),
        nullable=False,
        default=TaskStatus.PENDING,
    )
    priority: Mapped[TaskPriority] = mapped_column(
        Enum(TaskPriority, name="task_priority_enum", values_callable=_labels),
        nullable=False,
        default=TaskPriority.MEDIUM,
    )
    category: Mapped[str] = mapped_column(
        String(CATEGORY_MAX_LENGTH), nullable=False, default=""
    )
    due_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    created_by_user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    assigned_to_user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=True,
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    created_by: Mapped[User] = relationship(
        User,
        foreign_keys=[created_by_user_id],
    )
    assignee: Mapped[User | None] = relationship(
        User,
        foreign_keys=[assigned_to_user_id],
    )

    __table_args__ = (
        Index("ix_tasks_created_by_user_id", "created_by_user_id"),
        Index("ix_tasks_assigned_to_user_id", "assigned_to_user_id"),
        Index("ix_tasks_status", "status"),
        Index("ix_tasks_priority", "priority"),
        Index("ix_tasks_category", "category"),
        Index("ix_tasks_due_date", "due_date"),
        Index("ix_tasks_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Task id={self.id} title={self.title!r} status={self.status.value}>"
