# models/schemas.py
from datetime import date, datetime
from typing import List, Optional, Union

from sqlmodel import Field, SQLModel


class SubtaskIn(SQLModel):
    # id is optional; clients usually resend the full list without ids
    id: Optional[int] = None
    title: str
    status: str = "not_started"


class TaskCreate(SQLModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: str = "medium"
    status: str = "not_started"
    assigned_to_div: Optional[int] = None
    assigned_to_div_user: Optional[int] = None
    due_date: Optional[Union[datetime, date, str]] = None
    notes: Optional[str] = None
    tag_ids: List[int] = Field(default_factory=list)
    subtasks: List[SubtaskIn] = Field(default_factory=list)


class TaskUpdate(SQLModel):
    """Sparse update. Only fields the caller actually set are considered."""

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    assigned_to_div: Optional[int] = None
    assigned_to_div_user: Optional[int] = None
    due_date: Optional[Union[datetime, date, str]] = None
    notes: Optional[str] = None
    tag_ids: Optional[List[int]] = None
    subtasks: Optional[List[SubtaskIn]] = None
