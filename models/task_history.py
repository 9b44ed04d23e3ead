# models/task_history.py
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Text
from sqlmodel import Field, SQLModel

from models.common import CHANGE_KINDS, in_clause, timestamp_column, utcnow


class TaskHistory(SQLModel, table=True):
    """One audit entry. Rows are only ever inserted."""

    __tablename__ = "task_history"
    __table_args__ = (
        CheckConstraint(f"change_type IN ({in_clause(CHANGE_KINDS)})", name="ck_history_change_type"),
        {"extend_existing": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"),
                         nullable=False, index=True)
    )
    changed_by: int = Field(foreign_key="users.id")
    change_type: str
    field_name: Optional[str] = None
    old_value: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    new_value: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    change_description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column(index=True))
