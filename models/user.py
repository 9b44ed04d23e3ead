# models/user.py
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from models.common import ROLES, in_clause, timestamp_column, utcnow


class User(SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(f"role IN ({in_clause(ROLES)})", name="ck_user_role"),
        {"extend_existing": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    role: str = Field(default="user")
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
