# models/file_attachment.py
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer
from sqlmodel import Field, SQLModel

from models.common import timestamp_column, utcnow


class FileAttachment(SQLModel, table=True):
    __tablename__ = "files"
    __table_args__ = (
        CheckConstraint(
            "(task_id IS NOT NULL AND subtask_id IS NULL) OR "
            "(task_id IS NULL AND subtask_id IS NOT NULL)",
            name="ck_file_single_owner",
        ),
        {"extend_existing": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    filename: str
    original_filename: str
    file_path: str
    file_size: int
    mime_type: str
    task_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"),
                         nullable=True, index=True),
    )
    subtask_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("subtasks.id", ondelete="CASCADE"),
                         nullable=True, index=True),
    )
    uploaded_by: int = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
