# db.py

#============================================================#
#                         TaskTrail                          #
#============================================================#
# Purpose     : Role-based task tracking core: tasks,        #
#               subtasks, tags, attachments and an           #
#               append-only audit trail (SQLite/Postgres)    #
#============================================================#


from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from config import get_settings
from errors import InternalError, TaskTrailError

logger = logging.getLogger(__name__)


def _install_sqlite_hooks(engine: Engine) -> None:
    # pysqlite defers BEGIN and mishandles SAVEPOINT; emit BEGIN ourselves
    # and turn on FK enforcement so ON DELETE CASCADE applies.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cur = dbapi_connection.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def make_engine(url: str, echo: bool = False) -> Engine:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        eng = create_engine(url, echo=echo, **kwargs)
        _install_sqlite_hooks(eng)
        return eng
    return create_engine(url, echo=echo, pool_pre_ping=True)


# ---- Engine / Session ----
_settings = get_settings()
DATABASE_URL = _settings.database_url

engine = make_engine(DATABASE_URL, echo=_settings.sql_echo)


def init_db(bind: Optional[Engine] = None) -> None:
    import models  # noqa: F401  (registers tables on SQLModel.metadata)

    SQLModel.metadata.create_all(bind or engine)


def get_session(bind: Optional[Engine] = None) -> Session:
    return Session(bind or engine, expire_on_commit=False)


@contextmanager
def unit_of_work(session: Session, operation: str) -> Iterator[Session]:
    """
    Run one create/update/delete as a single transaction.

    Commits on clean exit. Domain errors roll back and propagate unchanged;
    any other failure rolls back and surfaces as InternalError("Failed to <operation>"),
    with the detail only in the log.
    """
    try:
        yield session
        session.commit()
    except TaskTrailError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("%s failed, transaction rolled back", operation)
        raise InternalError(f"Failed to {operation}") from exc
    except Exception as exc:
        session.rollback()
        logger.exception("%s failed unexpectedly, transaction rolled back", operation)
        raise InternalError(f"Failed to {operation}") from exc


@contextmanager
def checks(session: Session) -> Iterator[Session]:
    """
    Wrap the reads and checks that precede a unit of work. A failed check
    ends the read transaction the session opened, so the session can be reused.
    """
    try:
        yield session
    except TaskTrailError:
        session.rollback()
        raise
