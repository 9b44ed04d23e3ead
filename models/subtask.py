# models/subtask.py
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer
from sqlmodel import Field, SQLModel

from models.common import SUBTASK_STATUSES, in_clause, timestamp_column, utcnow


class Subtask(SQLModel, table=True):
    __tablename__ = "subtasks"
    __table_args__ = (
        CheckConstraint(f"status IN ({in_clause(SUBTASK_STATUSES)})", name="ck_subtask_status"),
        {"extend_existing": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"),
                         nullable=False, index=True)
    )
    title: str
    status: str = Field(default="not_started")
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
