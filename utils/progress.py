# utils/progress.py
from datetime import datetime, time
from typing import Dict, Iterable, Optional

from sqlalchemy import case, func
from sqlmodel import Session, select

from models.common import TASK_STATUSES, utcnow
from models.subtask import Subtask
from models.task import Task
from utils.roles import Actor, visible_assignee_filter


def compute_subtask_progress(subtasks: Iterable[Subtask]) -> Optional[float]:
    subs = list(subtasks)
    if not subs:
        return None
    done = sum(1 for s in subs if s.status == "completed")
    return round(done / len(subs) * 100, 1)


def compute_task_progress(task: Task, session) -> float:
    subs = session.exec(select(Subtask).where(Subtask.task_id == task.id)).all()
    pct = compute_subtask_progress(subs)
    if pct is not None:
        return pct
    return 100.0 if task.status == "completed" else 0.0


def get_task_summary(session: Session, actor: Actor, today: Optional[datetime] = None) -> Dict[str, int]:
    """Counts per status plus overdue (due before today, not completed)."""
    start_of_day = datetime.combine((today or utcnow()).date(), time.min)

    columns = [func.count(Task.id).label("total")]
    for status in TASK_STATUSES:
        columns.append(func.sum(case((Task.status == status, 1), else_=0)).label(status))
    columns.append(func.sum(case(
        ((Task.due_date < start_of_day) & (Task.status != "completed"), 1), else_=0,
    )).label("overdue"))

    stmt = select(*columns)
    assignee = visible_assignee_filter(actor)
    if assignee is not None:
        stmt = stmt.where(Task.assigned_to_div == assignee)

    row = session.exec(stmt).one()
    return {key: int(value or 0) for key, value in row._mapping.items()}
