"""
Closed enumerations shared by ORM models, schemas and permission checks.
Values are the textual labels exposed by the API.
"""
from __future__ import annotations

import enum
from typing import Any


class LabelEnum(str, enum.Enum):
    """
    String enum that also accepts a case-insensitive label or its
    zero-based ordinal, so "InProgress", "inprogress" and 1 all resolve.
    """

    @classmethod
    def _missing_(cls, value: Any) -> "LabelEnum | None":
        members = list(cls)
        if isinstance(value, int) and not isinstance(value, bool):
            if 0 <= value < len(members):
                return members[value]
            return None
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls._missing_(int(text))
            normalized = text.replace("_", "").replace(" ", "").lower()
            for member in members:
                if member.value.lower() == normalized:
                    return member
        return None


class UserRole(LabelEnum):
    USER = "User"
    ADMIN = "Admin"
    SUPER_ADMIN = "SuperAdmin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    @property
    def is_admin(self) -> bool:
        return self.rank >= _ROLE_RANK[UserRole.ADMIN]


_ROLE_RANK: dict[UserRole, int] = {
    UserRole.USER: 0,
    UserRole.ADMIN: 10,
    UserRole.SUPER_ADMIN: 20,
}


class TaskStatus(LabelEnum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


TERMINAL_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.CANCELLED}
)


class TaskPriority(LabelEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"
