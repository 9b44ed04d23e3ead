# utils/roles.py
"""Role policy: which actor may do what to a task.

Every decision is a pure function of the actor's role, the actor's id and
the task's ownership. The ``require_*`` helpers raise AuthorizationError.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from errors import AuthorizationError, ValidationError
from models.common import ROLES

ADMIN = "admin"
MANAGER = "manager"
USER = "user"

STAFF_ROLES = (ADMIN, MANAGER)

ASSIGNMENT_FIELDS = ("assigned_to_div", "assigned_to_div_user")


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing an operation."""

    id: int
    role: str

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValidationError(f"Unknown role: {self.role}")


def can_create_or_delete_task(role: str) -> bool:
    return role in STAFF_ROLES


def can_reassign(role: str) -> bool:
    return role in STAFF_ROLES


def can_view_or_edit_task(role: str, actor_id: int, task) -> bool:
    if role in STAFF_ROLES:
        return True
    return role == USER and task.assigned_to_div == actor_id


def can_delete_tag(role: str) -> bool:
    return role == ADMIN


def can_delete_file(role: str, actor_id: int, file, task: Optional[object]) -> bool:
    """Staff, the uploader, or the assignee of the task that owns the file."""
    if role in STAFF_ROLES:
        return True
    if file.uploaded_by == actor_id:
        return True
    return task is not None and task.assigned_to_div == actor_id


def visible_assignee_filter(actor: Actor) -> Optional[int]:
    """Assignee id that list reads are restricted to, or None for staff."""
    return None if actor.role in STAFF_ROLES else actor.id


def strip_assignment_fields(actor: Actor, changes: dict) -> dict:
    """Drop assignment fields the actor may not change; they are ignored, not rejected."""
    if can_reassign(actor.role):
        return changes
    return {k: v for k, v in changes.items() if k not in ASSIGNMENT_FIELDS}


# ---- raising helpers ----

def require_create_or_delete(actor: Actor, verb: str) -> None:
    if not can_create_or_delete_task(actor.role):
        raise AuthorizationError(f"Only admins and managers can {verb} tasks")


def require_view_or_edit(actor: Actor, task, message: str = "Access denied") -> None:
    if not can_view_or_edit_task(actor.role, actor.id, task):
        raise AuthorizationError(message)


def require_delete_tag(actor: Actor) -> None:
    if not can_delete_tag(actor.role):
        raise AuthorizationError("Only admins can delete tags")
