# utils/tasks.py
"""Task create / update / delete and the reads that go with them.

Every mutation runs as one unit of work: authorization and input checks
happen before the first write, and a database failure rolls the whole
operation back. History entries are written in savepoints of their own and
never fail the mutation they describe.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import case
from sqlmodel import Session, col, select

from db import checks, unit_of_work
from errors import NotFoundError, ValidationError
from models.common import (
    CHANGE_ASSIGNMENT, CHANGE_CREATED, CHANGE_DUE_DATE, CHANGE_NOTES,
    CHANGE_PRIORITY, CHANGE_STATUS, CHANGE_SUBTASK_ADDED, CHANGE_TAGS,
)
from models.division_user import DivisionUser
from models.schemas import TaskCreate, TaskUpdate
from models.task import Task
from models.user import User
from utils import history
from utils.changes import (
    REFERENCE_FIELDS, SCALAR_FIELDS, Change, detect_change, normalize_datetime,
    normalize_enum, normalize_reference, normalize_text, normalize_title,
)
from utils.files import FileStorage, default_storage, fetch_subtask_files, fetch_task_files
from utils.roles import (
    Actor, require_create_or_delete, require_view_or_edit, strip_assignment_fields,
    visible_assignee_filter,
)
from utils.serializers import subtask_to_dict, task_to_dict
from utils.subtasks import fetch_subtasks, insert_subtasks, reconcile_subtasks, validate_subtasks
from utils.tags import (
    clear_task_tags, fetch_tags_for_tasks, fetch_task_tags, link_tags, reconcile_tags, resolve_tag_ids,
    tags_added_change,
)

logger = logging.getLogger(__name__)

# Title and description are persisted without a history entry.
HISTORY_KINDS = {
    "priority": CHANGE_PRIORITY,
    "assigned_to_div": CHANGE_ASSIGNMENT,
    "assigned_to_div_user": CHANGE_ASSIGNMENT,
    "due_date": CHANGE_DUE_DATE,
    "status": CHANGE_STATUS,
    "notes": CHANGE_NOTES,
}

REFERENCE_MODELS = {
    "assigned_to_div": (User, "User not found"),
    "assigned_to_div_user": (DivisionUser, "Division user not found"),
}

PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


def _coerce(model_cls, payload: Union[Dict[str, Any], Any]):
    if isinstance(payload, model_cls):
        return payload
    try:
        return model_cls.model_validate(payload)
    except PydanticValidationError as exc:
        err = exc.errors()[0]
        where = ".".join(str(p) for p in err.get("loc", ()))
        raise ValidationError(f"Invalid {where or 'request'}: {err.get('msg')}") from exc


def _name_resolver(session: Session, field: str) -> Callable[[int], Optional[str]]:
    model, _ = REFERENCE_MODELS[field]

    def resolve(ref_id: int) -> Optional[str]:
        row = session.get(model, ref_id)
        return row.name if row else None

    return resolve


def _require_reference(session: Session, field: str, ref_id: Optional[int]) -> None:
    if ref_id is None:
        return
    model, message = REFERENCE_MODELS[field]
    if session.get(model, ref_id) is None:
        raise NotFoundError(message)


def _load_task(session: Session, task_id: int) -> Task:
    task = session.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


def _record_subtask_added(session: Session, task_id: int, actor_id: int, title: str) -> None:
    history.record(
        session, task_id, actor_id, CHANGE_SUBTASK_ADDED,
        field_name="subtask", new_value=title, description=f'Subtask "{title}" added',
    )


# ---- reads ----

def hydrate_task(session: Session, task: Task) -> Dict:
    """Task with resolved names, tags, subtasks (with their files) and task files."""
    subtasks = fetch_subtasks(session, task.id)
    sub_files = fetch_subtask_files(session, [s.id for s in subtasks])
    return task_to_dict(
        task,
        assignee=session.get(User, task.assigned_to_div) if task.assigned_to_div else None,
        division_user=(session.get(DivisionUser, task.assigned_to_div_user)
                       if task.assigned_to_div_user else None),
        creator=session.get(User, task.created_by),
        tags=fetch_task_tags(session, task.id),
        subtasks=[subtask_to_dict(s, sub_files.get(s.id, [])) for s in subtasks],
        files=fetch_task_files(session, task.id),
    )


def get_task(session: Session, actor: Actor, task_id: int) -> Dict:
    task = _load_task(session, task_id)
    require_view_or_edit(actor, task)
    return hydrate_task(session, task)


def list_tasks(session: Session, actor: Actor, status: Optional[str] = None) -> List[Dict]:
    """
    Tasks visible to the actor, soonest due first (undated last), then by
    priority high to low. ``user`` actors only see tasks assigned to them.
    """
    stmt = select(Task)
    assignee = visible_assignee_filter(actor)
    if assignee is not None:
        stmt = stmt.where(Task.assigned_to_div == assignee)
    if status is not None:
        stmt = stmt.where(Task.status == normalize_enum("status", status))
    stmt = stmt.order_by(
        case((col(Task.due_date).is_(None), 1), else_=0),
        Task.due_date,
        case(PRIORITY_RANK, value=Task.priority, else_=len(PRIORITY_RANK)),
        Task.id,
    )
    tasks = session.exec(stmt).all()

    tags = fetch_tags_for_tasks(session, [t.id for t in tasks])
    user_ids = {t.assigned_to_div for t in tasks if t.assigned_to_div} | {t.created_by for t in tasks}
    users = {u.id: u for u in session.exec(select(User).where(col(User.id).in_(list(user_ids)))).all()} \
        if user_ids else {}
    div_ids = {t.assigned_to_div_user for t in tasks if t.assigned_to_div_user}
    div_users = {d.id: d for d in session.exec(
        select(DivisionUser).where(col(DivisionUser.id).in_(list(div_ids)))).all()} if div_ids else {}

    return [
        task_to_dict(
            t,
            assignee=users.get(t.assigned_to_div),
            division_user=div_users.get(t.assigned_to_div_user),
            creator=users.get(t.created_by),
            tags=tags.get(t.id, []),
        )
        for t in tasks
    ]


# ---- mutations ----

def create_task(session: Session, actor: Actor, payload) -> Dict:
    """
    Create a task with its tags and subtasks.

    Always logs ``task_created``; adds one ``tags_change`` when tags were
    given and one ``subtask_added`` per subtask.
    """
    require_create_or_delete(actor, "create")
    data = _coerce(TaskCreate, payload)

    with checks(session):
        title = normalize_title(data.title)
        priority = normalize_enum("priority", data.priority or "medium")
        status = normalize_enum("status", data.status or "not_started")
        due_date = normalize_datetime(data.due_date)
        assigned_to_div = normalize_reference("assigned_to_div", data.assigned_to_div)
        assigned_to_div_user = normalize_reference("assigned_to_div_user", data.assigned_to_div_user)
        _require_reference(session, "assigned_to_div", assigned_to_div)
        _require_reference(session, "assigned_to_div_user", assigned_to_div_user)
        tags = resolve_tag_ids(session, data.tag_ids or [])
        subtasks = validate_subtasks(data.subtasks)

    with unit_of_work(session, "create task"):
        task = Task(
            title=title,
            description=normalize_text(data.description),
            priority=priority,
            status=status,
            assigned_to_div=assigned_to_div,
            assigned_to_div_user=assigned_to_div_user,
            created_by=actor.id,
            due_date=due_date,
            notes=normalize_text(data.notes),
        )
        session.add(task)
        session.flush()

        history.record(session, task.id, actor.id, CHANGE_CREATED,
                       description=f'Task "{title}" created')

        if tags:
            link_tags(session, task.id, tags)
            history.record(session, task.id, actor.id, CHANGE_TAGS, tags_added_change(tags))

        for row in insert_subtasks(session, task.id, subtasks):
            _record_subtask_added(session, task.id, actor.id, row.title)

        result = hydrate_task(session, task)

    logger.info("created task id=%s by user=%s tags=%d subtasks=%d",
                task.id, actor.id, len(tags), len(subtasks))
    return result


def _detect_scalar_changes(session: Session, task: Task, supplied: Dict[str, Any]
                           ) -> Tuple[Dict[str, Any], List[Tuple[str, Change]]]:
    staged: Dict[str, Any] = {}
    logged: List[Tuple[str, Change]] = []
    for field in SCALAR_FIELDS:
        if field not in supplied:
            continue
        resolve = None
        if field in REFERENCE_FIELDS:
            ref_id = normalize_reference(field, supplied[field])
            if ref_id != getattr(task, field):
                _require_reference(session, field, ref_id)
            resolve = _name_resolver(session, field)
        change = detect_change(field, getattr(task, field), supplied[field], resolve)
        if change is None:
            continue
        staged[field] = change.value
        if field in HISTORY_KINDS:
            logged.append((HISTORY_KINDS[field], change))
    return staged, logged


def update_task(session: Session, actor: Actor, task_id: int, payload,
                storage: Optional[FileStorage] = None) -> Dict:
    """
    Apply a sparse update. Only fields the caller set are compared; fields
    equal to their stored value are neither written nor logged.
    """
    data = _coerce(TaskUpdate, payload)
    supplied = data.model_dump(exclude_unset=True)

    with checks(session):
        task = _load_task(session, task_id)
        require_view_or_edit(actor, task, "You can only edit tasks assigned to you")
        supplied = strip_assignment_fields(actor, supplied)

        staged, logged = _detect_scalar_changes(session, task, supplied)

        requested_tags = None
        if "tag_ids" in supplied:
            requested_tags = resolve_tag_ids(session, supplied["tag_ids"] or [])

        requested_subtasks = None
        if data.subtasks is not None and "subtasks" in supplied:
            requested_subtasks = validate_subtasks(data.subtasks)

    removed_paths: Tuple[str, ...] = ()
    entries = len(logged)
    with unit_of_work(session, "update task"):
        for kind, change in logged:
            history.record(session, task.id, actor.id, kind, change)

        if requested_tags is not None:
            tag_change = reconcile_tags(session, task.id, requested_tags).change()
            if tag_change is not None:
                history.record(session, task.id, actor.id, CHANGE_TAGS, tag_change)
                entries += 1

        if requested_subtasks is not None:
            rec = reconcile_subtasks(session, task.id, requested_subtasks)
            removed_paths = rec.removed_paths
            for row in rec.added:
                _record_subtask_added(session, task.id, actor.id, row.title)
            entries += len(rec.added)

        if staged:
            for field, value in staged.items():
                setattr(task, field, value)
            session.add(task)
            session.flush()

        result = hydrate_task(session, task)

    if removed_paths:
        (storage or default_storage()).remove_many(removed_paths)
    logger.info("updated task id=%s by user=%s fields=%s history=%d",
                task.id, actor.id, sorted(staged), entries)
    return result


def delete_task(session: Session, actor: Actor, task_id: int,
                storage: Optional[FileStorage] = None) -> None:
    """Delete a task with its attachments, subtasks and tag links."""
    with checks(session):
        task = _load_task(session, task_id)
        require_create_or_delete(actor, "delete")

    with unit_of_work(session, "delete task"):
        subtasks = fetch_subtasks(session, task.id)
        files = fetch_task_files(session, task.id)
        for sub_files in fetch_subtask_files(session, [s.id for s in subtasks]).values():
            files.extend(sub_files)
        paths = [f.file_path for f in files]

        for f in files:
            session.delete(f)
        session.flush()
        for s in subtasks:
            session.delete(s)
        session.flush()
        clear_task_tags(session, task.id)
        session.delete(task)

    (storage or default_storage()).remove_many(paths)
    logger.info("deleted task id=%s by user=%s files=%d subtasks=%d",
                task_id, actor.id, len(paths), len(subtasks))
