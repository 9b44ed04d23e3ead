# utils/files.py
"""Attachment records and the on-disk store behind them.

Uploading bytes is the boundary layer's job; by the time ``record_upload``
runs the file is already stored. Stored files are removed only after the
database change that dropped their records has committed.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from sqlmodel import Session, col, select

from config import get_settings
from db import checks, unit_of_work
from errors import AuthorizationError, NotFoundError, ValidationError
from models.file_attachment import FileAttachment
from models.subtask import Subtask
from models.task import Task
from utils.roles import Actor, can_delete_file, require_view_or_edit
from utils.serializers import file_to_dict

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "application/zip",
    "application/x-zip-compressed",
)


class FileStorage:
    """Directory holding uploaded files."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def resolve(self, file_path: Union[str, Path]) -> Path:
        p = Path(file_path)
        return p if p.is_absolute() else self.root / p

    def remove(self, file_path: Union[str, Path]) -> bool:
        p = self.resolve(file_path)
        try:
            p.unlink(missing_ok=True)
        except OSError:
            # the record is already gone; leave the orphan for cleanup
            logger.warning("could not remove stored file %s", p, exc_info=True)
            return False
        return True

    def remove_many(self, paths: Iterable[str]) -> int:
        return sum(1 for p in paths if self.remove(p))


def default_storage() -> FileStorage:
    return FileStorage(get_settings().upload_dir)


# ---- lookups ----

def fetch_task_files(session: Session, task_id: int) -> List[FileAttachment]:
    return list(session.exec(
        select(FileAttachment)
        .where(FileAttachment.task_id == task_id)
        .order_by(FileAttachment.created_at.desc(), FileAttachment.id.desc())
    ).all())


def fetch_subtask_files(session: Session, subtask_ids: Sequence[int]) -> Dict[int, List[FileAttachment]]:
    out: Dict[int, List[FileAttachment]] = {sid: [] for sid in subtask_ids}
    if not subtask_ids:
        return out
    rows = session.exec(
        select(FileAttachment)
        .where(col(FileAttachment.subtask_id).in_(list(subtask_ids)))
        .order_by(FileAttachment.created_at.desc(), FileAttachment.id.desc())
    ).all()
    for f in rows:
        out[f.subtask_id].append(f)
    return out


def _owning_task(session: Session, task_id: Optional[int], subtask_id: Optional[int]) -> Optional[Task]:
    if task_id is not None:
        return session.get(Task, task_id)
    sub = session.get(Subtask, subtask_id)
    return session.get(Task, sub.task_id) if sub else None


# ---- operations ----

def record_upload(
    session: Session,
    actor: Actor,
    *,
    filename: str,
    original_filename: str,
    file_path: str,
    file_size: int,
    mime_type: str,
    task_id: Optional[int] = None,
    subtask_id: Optional[int] = None,
    max_bytes: Optional[int] = None,
) -> Dict:
    """Register a stored upload against exactly one task or subtask."""
    if (task_id is None) == (subtask_id is None):
        raise ValidationError("Exactly one of task_id or subtask_id is required")
    if mime_type not in ALLOWED_MIME_TYPES:
        raise ValidationError("Invalid file type. Only images and common document formats are allowed.")
    limit = max_bytes if max_bytes is not None else get_settings().max_upload_bytes
    if file_size > limit:
        raise ValidationError(f"File exceeds the {limit} byte limit")

    with checks(session):
        task = _owning_task(session, task_id, subtask_id)
        if task is None:
            raise NotFoundError("Task not found" if task_id is not None else "Subtask not found")
        require_view_or_edit(actor, task)

    with unit_of_work(session, "upload file"):
        f = FileAttachment(
            filename=filename,
            original_filename=original_filename,
            file_path=file_path,
            file_size=file_size,
            mime_type=mime_type,
            task_id=task_id,
            subtask_id=subtask_id,
            uploaded_by=actor.id,
        )
        session.add(f)
        session.flush()
        out = file_to_dict(f)
    logger.info("recorded file id=%s task=%s subtask=%s by user=%s", f.id, task_id, subtask_id, actor.id)
    return out


def delete_file(session: Session, actor: Actor, file_id: int,
                storage: Optional[FileStorage] = None) -> None:
    with checks(session):
        f = session.get(FileAttachment, file_id)
        if f is None:
            raise NotFoundError("File not found")
        task = _owning_task(session, f.task_id, f.subtask_id)
        if not can_delete_file(actor.role, actor.id, f, task):
            raise AuthorizationError("Access denied")

    path = f.file_path
    with unit_of_work(session, "delete file"):
        session.delete(f)
    (storage or default_storage()).remove(path)
    logger.info("deleted file id=%s by user=%s", file_id, actor.id)
