# models/tag.py
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from sqlmodel import Field, SQLModel

from models.common import timestamp_column, utcnow

TAG_NAME_MAX = 50


class Tag(SQLModel, table=True):
    __tablename__ = "tags"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=TAG_NAME_MAX, unique=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())


class TaskTag(SQLModel, table=True):
    __tablename__ = "task_tags"
    __table_args__ = (
        UniqueConstraint("task_id", "tag_id", name="uq_task_tag"),
        {"extend_existing": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"),
                         nullable=False, index=True)
    )
    tag_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"),
                         nullable=False, index=True)
    )
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
