# tests/test_progress.py
from datetime import datetime

from models.subtask import Subtask
from models.task import Task
from utils.progress import compute_subtask_progress, compute_task_progress, get_task_summary


def test_compute_task_progress():
    class DummySession:
        def exec(self, stmt):
            class _Result(list):
                def all(self):
                    return list(self)
            return _Result([Subtask(status="completed"), Subtask(status="not_started")])

    dummy_task = Task(id=1, title="t", created_by=1)
    result = compute_task_progress(dummy_task, DummySession())
    assert result == 50.0


def test_compute_task_progress_without_subtasks():
    class DummySession:
        def exec(self, stmt):
            class _Result(list):
                def all(self):
                    return list(self)
            return _Result()

    assert compute_task_progress(Task(id=1, title="t", created_by=1, status="completed"), DummySession()) == 100.0
    assert compute_task_progress(Task(id=2, title="t", created_by=1), DummySession()) == 0.0


def test_compute_subtask_progress_empty_is_none():
    assert compute_subtask_progress([]) is None


def test_task_summary_counts_and_overdue(session, people, actor):
    session.add_all([
        Task(title="a", created_by=people.manager.id, status="completed",
             due_date=datetime(2024, 1, 1), assigned_to_div=people.alice.id),
        Task(title="b", created_by=people.manager.id, status="in_progress",
             due_date=datetime(2024, 1, 1), assigned_to_div=people.alice.id),
        Task(title="c", created_by=people.manager.id, status="suspended",
             due_date=datetime(2030, 1, 1), assigned_to_div=people.bob.id),
        Task(title="d", created_by=people.manager.id),
    ])
    session.commit()

    today = datetime(2025, 6, 1)
    summary = get_task_summary(session, actor("manager"), today=today)
    assert summary == {
        "total": 4, "not_started": 1, "in_progress": 1, "completed": 1,
        "suspended": 1, "overdue": 1,
    }

    mine = get_task_summary(session, actor("alice"), today=today)
    assert mine["total"] == 2
    assert mine["overdue"] == 1
    assert mine["suspended"] == 0
