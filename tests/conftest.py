# tests/conftest.py
from types import SimpleNamespace

import pytest
from sqlmodel import select

from db import get_session, init_db, make_engine
from models.division_user import DivisionUser
from models.tag import Tag
from models.task import Task
from models.task_history import TaskHistory
from models.user import User
from utils.files import FileStorage
from utils.roles import Actor


@pytest.fixture()
def engine(tmp_path):
    """Fresh database file per test, foreign keys enforced.

    A file rather than :memory: so each session gets its own connection.
    """
    eng = make_engine(f"sqlite:///{tmp_path / 'tasktrail.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine):
    with get_session(engine) as s:
        yield s


@pytest.fixture()
def people(session):
    users = {
        "admin": User(name="Ada Admin", email="ada@example.com", role="admin"),
        "manager": User(name="Max Manager", email="max@example.com", role="manager"),
        "alice": User(name="Alice", email="alice@example.com", role="user"),
        "bob": User(name="Bob", email="bob@example.com", role="user"),
    }
    session.add_all(list(users.values()))
    session.commit()
    div = DivisionUser(name="Dana Division", user_id=users["alice"].id)
    session.add(div)
    session.commit()
    return SimpleNamespace(div=div, **users)


@pytest.fixture()
def actor(people):
    def make(name: str) -> Actor:
        u = getattr(people, name)
        return Actor(id=u.id, role=u.role)
    return make


@pytest.fixture()
def tags(session):
    rows = [Tag(id=5, name="finance"), Tag(id=7, name="quarterly"), Tag(id=9, name="urgent")]
    session.add_all(rows)
    session.commit()
    return {t.id: t for t in rows}


@pytest.fixture()
def storage(tmp_path):
    root = tmp_path / "uploads"
    root.mkdir()
    return FileStorage(root)


@pytest.fixture()
def task42(session, people):
    """Task 42, assigned to alice, not started."""
    task = Task(id=42, title="Quarterly close", created_by=people.manager.id,
                assigned_to_div=people.alice.id)
    session.add(task)
    session.commit()
    return task


@pytest.fixture()
def history_of(engine):
    """Read a task's history from a separate session (what was really committed)."""
    def read(task_id: int):
        with get_session(engine) as s:
            return s.exec(
                select(TaskHistory).where(TaskHistory.task_id == task_id).order_by(TaskHistory.id)
            ).all()
    return read
