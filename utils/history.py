# utils/history.py
"""Append-only task history.

Entries are only ever inserted. A failed insert is logged and dropped: it
rolls back its own savepoint and never the task change it describes.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from errors import NotFoundError
from models.common import CHANGE_KINDS
from models.task import Task
from models.task_history import TaskHistory
from models.user import User
from utils.changes import Change
from utils.roles import Actor, require_view_or_edit
from utils.serializers import history_to_dict

logger = logging.getLogger(__name__)


def _text(value) -> Optional[str]:
    return str(value) if value else None


def record(
    session: Session,
    task_id: int,
    actor_id: int,
    change_kind: str,
    change: Optional[Change] = None,
    *,
    field_name: Optional[str] = None,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
    description: Optional[str] = None,
) -> Optional[TaskHistory]:
    """
    Append one history entry for ``task_id``.

    Values come from ``change`` when given, otherwise from the keyword
    arguments. Returns the stored entry, or None when the write failed.
    Callers must flush their own pending writes first so the savepoint only
    covers this insert.
    """
    if change_kind not in CHANGE_KINDS:
        raise ValueError(f"Unknown change kind: {change_kind}")

    if change is not None:
        field_name = field_name or change.field_name
        old_value = change.old_value if old_value is None else old_value
        new_value = change.new_value if new_value is None else new_value
        description = description or change.description

    entry = TaskHistory(
        task_id=task_id,
        changed_by=actor_id,
        change_type=change_kind,
        field_name=field_name,
        old_value=_text(old_value),
        new_value=_text(new_value),
        change_description=description or None,
    )
    try:
        with session.begin_nested():
            session.add(entry)
    except SQLAlchemyError:
        logger.exception("history write failed task=%s kind=%s actor=%s", task_id, change_kind, actor_id)
        return None

    logger.debug("history task=%s kind=%s field=%s", task_id, change_kind, field_name)
    return entry


def get_task_history(session: Session, actor: Actor, task_id: int) -> List[Dict]:
    """Newest-first history of one task with the acting user's name and email."""
    task = session.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    require_view_or_edit(actor, task)

    rows = session.exec(
        select(TaskHistory, User)
        .join(User, TaskHistory.changed_by == User.id, isouter=True)
        .where(TaskHistory.task_id == task_id)
        .order_by(TaskHistory.created_at.desc(), TaskHistory.id.desc())
    ).all()
    return [history_to_dict(entry, user) for entry, user in rows]
