"""
Authorization predicate for tasks.

Admin-tier roles (Admin, SuperAdmin) may do everything. Other callers are
granted an action when they stand in one of the relations listed for that
action in TASK_CAPABILITIES. Callers treat a denial as "not found" so that
inaccessible tasks are indistinguishable from missing ones.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from app.models.enums import UserRole

if TYPE_CHECKING:
    from app.models.user import User


class TaskRelation(enum.Enum):
    CREATOR = "creator"
    ASSIGNEE = "assignee"


class TaskAction(str, enum.Enum):
    READ = "read"
    UPDATE = "update"
    UPDATE_STATUS = "update_status"
    ASSIGN = "assign"
    UNASSIGN = "unassign"
    DELETE = "delete"


_CREATOR_OR_ASSIGNEE = frozenset({TaskRelation.CREATOR, TaskRelation.ASSIGNEE})
_CREATOR_ONLY = frozenset({TaskRelation.CREATOR})

TASK_CAPABILITIES: dict[TaskAction, frozenset[TaskRelation]] = {
    TaskAction.READ: _CREATOR_OR_ASSIGNEE,
    TaskAction.UPDATE: _CREATOR_OR_ASSIGNEE,
    TaskAction.UPDATE_STATUS: _CREATOR_OR_ASSIGNEE,
    TaskAction.UNASSIGN: _CREATOR_OR_ASSIGNEE,
    TaskAction.ASSIGN: _CREATOR_ONLY,
    TaskAction.DELETE: _CREATOR_ONLY,
}


class OwnedTask(Protocol):
    created_by_user_id: int
    assigned_to_user_id: int | None


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, resolved once per request."""

    user_id: int
    role: UserRole

    @classmethod
    def from_user(cls, user: "User") -> "Principal":
        return cls(user_id=user.id, role=user.role)

    @property
    def is_admin(self) -> bool:
        return self.role.is_admin


def task_relations(principal: Principal, task: OwnedTask) -> frozenset[TaskRelation]:
    relations = set()
    if task.created_by_user_id == principal.user_id:
        relations.add(TaskRelation.CREATOR)
    if task.assigned_to_user_id is not None and task.assigned_to_user_id == principal.user_id:
        relations.add(TaskRelation.ASSIGNEE)
    return frozenset(relations)


def can_perform(principal: Principal, task: OwnedTask, action: TaskAction) -> bool:
    """Pure decision: may principal perform action on task?"""
    if principal.is_admin:
        return True
    return bool(task_relations(principal, task) & TASK_CAPABILITIES[action])
