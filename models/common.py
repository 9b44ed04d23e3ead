# models/common.py
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime

ROLES = ("admin", "manager", "user")
TASK_PRIORITIES = ("high", "medium", "low")
TASK_STATUSES = ("not_started", "in_progress", "completed", "suspended")
SUBTASK_STATUSES = ("not_started", "completed")

# Change kinds
CHANGE_STATUS = "status_change"
CHANGE_ASSIGNMENT = "assignment_change"
CHANGE_TAGS = "tags_change"
CHANGE_DUE_DATE = "due_date_change"
CHANGE_SUBTASK_ADDED = "subtask_added"
CHANGE_NOTES = "notes_updated"
CHANGE_PRIORITY = "priority_change"
CHANGE_CREATED = "task_created"

CHANGE_KINDS = (
    CHANGE_STATUS, CHANGE_ASSIGNMENT, CHANGE_TAGS, CHANGE_DUE_DATE,
    CHANGE_SUBTASK_ADDED, CHANGE_NOTES, CHANGE_PRIORITY, CHANGE_CREATED,
)


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def in_clause(values) -> str:
    return ",".join(f"'{v}'" for v in values)


def timestamp_column(index: bool = False) -> Column:
    """Naive-UTC DateTime column; values are stored exactly as ``utcnow()`` returns them."""
    return Column(DateTime, nullable=False, default=utcnow, index=index)
