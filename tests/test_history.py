# tests/test_history.py
import pytest

from errors import AuthorizationError, NotFoundError
from models.task import Task
from models.common import CHANGE_NOTES, CHANGE_STATUS
from utils import history
from utils.changes import detect_change


def test_record_from_change(session, people, task42, history_of):
    change = detect_change("status", "not_started", "in_progress")
    entry = history.record(session, 42, people.alice.id, CHANGE_STATUS, change)
    session.commit()

    assert entry is not None
    rows = history_of(42)
    assert len(rows) == 1
    assert rows[0].field_name == "status"
    assert rows[0].old_value == "not_started"
    assert rows[0].new_value == "in_progress"
    assert rows[0].change_description == "Status changed from not_started to in_progress"


def test_record_rejects_unknown_kind(session, people, task42):
    with pytest.raises(ValueError):
        history.record(session, 42, people.admin.id, "renamed")


def test_failed_write_is_swallowed(session, people, task42, history_of):
    # actor 999 does not exist, so the insert violates the changed_by foreign key
    assert history.record(session, 42, 999, CHANGE_NOTES, description="lost") is None

    task42.notes = "still saved"
    session.add(task42)
    session.commit()

    assert history_of(42) == []
    assert session.get(Task, 42).notes == "still saved"


def test_get_task_history_newest_first(session, people, actor, task42):
    history.record(session, 42, people.manager.id, CHANGE_NOTES, description="first")
    history.record(session, 42, people.alice.id, CHANGE_STATUS, description="second")
    session.commit()

    rows = history.get_task_history(session, actor("alice"), 42)
    assert [r["change_description"] for r in rows] == ["second", "first"]
    assert rows[0]["changed_by_name"] == "Alice"
    assert rows[1]["changed_by_email"] == "max@example.com"


def test_get_task_history_access(session, actor, task42):
    with pytest.raises(AuthorizationError):
        history.get_task_history(session, actor("bob"), 42)
    with pytest.raises(NotFoundError):
        history.get_task_history(session, actor("admin"), 4242)
