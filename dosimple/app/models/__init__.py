"""
ORM model package. Import all models here so Alembic autogenerate
can discover every table through the shared Base metadata.
"""
from app.models.enums import TaskPriority, TaskStatus, UserRole  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.task import Task  # noqa: F401
