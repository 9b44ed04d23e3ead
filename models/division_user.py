# models/division_user.py
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer
from sqlmodel import Field, SQLModel

from models.common import timestamp_column, utcnow


class DivisionUser(SQLModel, table=True):
    """Task-assignable person without login, linked to one login-capable user."""

    __tablename__ = "div_users"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"),
                         unique=True, nullable=False)
    )
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
