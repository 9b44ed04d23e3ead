# models/task.py
from datetime import date, datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Text
from sqlmodel import Field, SQLModel

from models.common import TASK_PRIORITIES, TASK_STATUSES, in_clause, timestamp_column, utcnow


class Task(SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint(f"priority IN ({in_clause(TASK_PRIORITIES)})", name="ck_task_priority"),
        CheckConstraint(f"status IN ({in_clause(TASK_STATUSES)})", name="ck_task_status"),
        {"extend_existing": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    priority: str = Field(default="medium")
    status: str = Field(default="not_started", index=True)

    # assigned_to_div drives ownership for permission checks
    assigned_to_div: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="SET NULL"),
                         nullable=True, index=True),
    )
    assigned_to_div_user: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("div_users.id", ondelete="SET NULL"),
                         nullable=True),
    )
    created_by: int = Field(foreign_key="users.id")

    assignment_date: date = Field(default_factory=date.today)
    due_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
