# utils/subtasks.py
"""Subtask collection replace.

A task's subtasks are replaced wholesale: every current row is deleted and
the requested list inserted fresh. Attachments follow a requested subtask
that names an old subtask's id, or failing that, its title. An id match
always beats a title match. Among title matches the first requested
subtask wins and later duplicates start without files.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlmodel import Session, select

from errors import ValidationError
from models.common import SUBTASK_STATUSES
from models.file_attachment import FileAttachment
from models.schemas import SubtaskIn
from models.subtask import Subtask
from utils.files import fetch_subtask_files

logger = logging.getLogger(__name__)


def validate_subtasks(items: Optional[Iterable[SubtaskIn]]) -> List[SubtaskIn]:
    out = []
    for item in items or ():
        title = (item.title or "").strip()
        if not title:
            raise ValidationError("Subtask title is required")
        status = item.status or "not_started"
        if status not in SUBTASK_STATUSES:
            raise ValidationError(f"Invalid subtask status: {status!r}")
        out.append(SubtaskIn(id=item.id, title=title, status=status))
    return out


def fetch_subtasks(session: Session, task_id: int) -> List[Subtask]:
    return list(session.exec(
        select(Subtask).where(Subtask.task_id == task_id).order_by(Subtask.id)
    ).all())


def insert_subtasks(session: Session, task_id: int, items: Sequence[SubtaskIn]) -> List[Subtask]:
    rows = []
    for item in items:
        row = Subtask(task_id=task_id, title=item.title, status=item.status)
        session.add(row)
        rows.append(row)
    session.flush()
    return rows


@dataclass(frozen=True)
class SubtaskReconciliation:
    subtasks: Tuple[Subtask, ...]
    added: Tuple[Subtask, ...]
    preserved_files: int
    # stored files whose records were dropped; remove after commit
    removed_paths: Tuple[str, ...]


def _snapshot(f: FileAttachment) -> Dict:
    return {
        "filename": f.filename,
        "original_filename": f.original_filename,
        "file_path": f.file_path,
        "file_size": f.file_size,
        "mime_type": f.mime_type,
        "uploaded_by": f.uploaded_by,
        "created_at": f.created_at,
    }


def reconcile_subtasks(session: Session, task_id: int, requested: Sequence[SubtaskIn]) -> SubtaskReconciliation:
    current = fetch_subtasks(session, task_id)
    files_by_sub = fetch_subtask_files(session, [s.id for s in current])

    current_ids = {s.id for s in current}
    old_titles = {s.title for s in current}
    subs_by_title: Dict[str, List[int]] = {}
    for s in current:
        if files_by_sub.get(s.id):
            subs_by_title.setdefault(s.title, []).append(s.id)

    # Decide which old subtask's files each requested subtask inherits.
    # Id matches are settled before any title match, wherever they sit in the request.
    by_id = [item.id is not None and item.id in current_ids for item in requested]
    inherits: List[List[int]] = [[] for _ in requested]
    claimed: Set[int] = set()
    for i, item in enumerate(requested):
        if by_id[i] and item.id not in claimed:
            inherits[i] = [item.id]
            claimed.add(item.id)
    for i, item in enumerate(requested):
        if inherits[i]:
            continue
        inherits[i] = [sid for sid in subs_by_title.get(item.title, ()) if sid not in claimed]
        claimed.update(inherits[i])

    plan: List[Tuple[SubtaskIn, List[int], bool]] = [
        (item, inherits[i], not by_id[i] and item.title not in old_titles)
        for i, item in enumerate(requested)
    ]

    carried = {sid: [_snapshot(f) for f in files_by_sub.get(sid, [])] for sid in claimed}
    removed_paths = tuple(
        f.file_path
        for sid, files in files_by_sub.items() if sid not in claimed
        for f in files
    )

    for files in files_by_sub.values():
        for f in files:
            session.delete(f)
    session.flush()
    for s in current:
        session.delete(s)
    session.flush()

    rows = insert_subtasks(session, task_id, [item for item, _, _ in plan])

    preserved = 0
    for row, (_, inherit, _) in zip(rows, plan):
        for sid in inherit:
            for snap in carried[sid]:
                session.add(FileAttachment(subtask_id=row.id, **snap))
                preserved += 1
    session.flush()

    added = tuple(row for row, (_, _, is_new) in zip(rows, plan) if is_new)
    logger.debug("task=%s subtasks %d -> %d added=%d preserved_files=%d dropped_files=%d",
                 task_id, len(current), len(rows), len(added), preserved, len(removed_paths))
    return SubtaskReconciliation(tuple(rows), added, preserved, removed_paths)
