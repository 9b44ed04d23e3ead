# utils/tags.py
"""Tag lookup, task-tag reconciliation, and admin tag management."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from db import unit_of_work
from errors import NotFoundError, ValidationError
from models.tag import TAG_NAME_MAX, Tag, TaskTag
from utils.changes import NONE_TEXT, Change
from utils.roles import Actor, require_delete_tag

logger = logging.getLogger(__name__)


def join_names(tags: Iterable[Tag]) -> str:
    return ", ".join(sorted(t.name for t in tags))


def fetch_task_tags(session: Session, task_id: int) -> List[Tag]:
    return list(session.exec(
        select(Tag)
        .join(TaskTag, TaskTag.tag_id == Tag.id)
        .where(TaskTag.task_id == task_id)
        .order_by(Tag.name)
    ).all())


def fetch_tags_for_tasks(session: Session, task_ids: Sequence[int]) -> Dict[int, List[Tag]]:
    """One query for the tags of many tasks, keyed by task id."""
    out: Dict[int, List[Tag]] = {tid: [] for tid in task_ids}
    if not task_ids:
        return out
    rows = session.exec(
        select(TaskTag.task_id, Tag)
        .join(Tag, TaskTag.tag_id == Tag.id)
        .where(col(TaskTag.task_id).in_(list(task_ids)))
        .order_by(Tag.name)
    ).all()
    for task_id, tag in rows:
        out[task_id].append(tag)
    return out


def resolve_tag_ids(session: Session, tag_ids: Iterable[int]) -> List[Tag]:
    """
    Bulk-load the requested tags in request order, duplicates collapsed.

    Raises NotFoundError naming any id that does not exist.
    """
    wanted: List[int] = []
    for raw in tag_ids:
        try:
            tid = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid tag id: {raw!r}")
        if tid not in wanted:
            wanted.append(tid)
    if not wanted:
        return []

    found = {t.id: t for t in session.exec(select(Tag).where(col(Tag.id).in_(wanted))).all()}
    missing = [tid for tid in wanted if tid not in found]
    if missing:
        raise NotFoundError(f"Tag not found: {', '.join(str(m) for m in missing)}")
    return [found[tid] for tid in wanted]


def link_tags(session: Session, task_id: int, tags: Iterable[Tag]) -> None:
    for tag in tags:
        session.add(TaskTag(task_id=task_id, tag_id=tag.id))
    session.flush()


def clear_task_tags(session: Session, task_id: int) -> int:
    links = session.exec(select(TaskTag).where(TaskTag.task_id == task_id)).all()
    for link in links:
        session.delete(link)
    session.flush()
    return len(links)


@dataclass(frozen=True)
class TagReconciliation:
    old_tags: Tuple[Tag, ...]
    new_tags: Tuple[Tag, ...]

    @property
    def changed(self) -> bool:
        return sorted(t.id for t in self.old_tags) != sorted(t.id for t in self.new_tags)

    def change(self) -> Optional[Change]:
        if not self.changed:
            return None
        old_names = join_names(self.old_tags) or NONE_TEXT
        if not self.new_tags:
            return Change("tags", old_names, NONE_TEXT, f'All tags removed (was: "{old_names}")')
        new_names = join_names(self.new_tags)
        return Change("tags", old_names, new_names, f'Tags changed from "{old_names}" to "{new_names}"')


def reconcile_tags(session: Session, task_id: int, requested: Sequence[Tag]) -> TagReconciliation:
    """
    Replace the task's tag links with ``requested``.

    All current links are deleted and the requested ones re-inserted; only
    the sorted id sets decide whether this counts as a change.
    """
    current = fetch_task_tags(session, task_id)
    clear_task_tags(session, task_id)

    link_tags(session, task_id, requested)
    result = TagReconciliation(tuple(current), tuple(requested))
    logger.debug("task=%s tags %s -> %s changed=%s", task_id,
                 [t.id for t in current], [t.id for t in requested], result.changed)
    return result


def tags_added_change(tags: Sequence[Tag]) -> Change:
    names = join_names(tags)
    return Change("tags", NONE_TEXT, names, f"Tags added: {names}")


# ---- tag management ----

def get_or_create_tag(session: Session, name: Optional[str]) -> Tuple[Tag, bool]:
    """
    Return (tag, created). An existing tag with the exact same name is
    returned as-is, so repeating the request is harmless.
    """
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("Tag name is required")
    if len(trimmed) > TAG_NAME_MAX:
        raise ValidationError(f"Tag name must be {TAG_NAME_MAX} characters or less")

    with unit_of_work(session, "create tag"):
        existing = session.exec(select(Tag).where(Tag.name == trimmed)).first()
        if existing is not None:
            return existing, False
        tag = Tag(name=trimmed)
        try:
            with session.begin_nested():
                session.add(tag)
        except IntegrityError:
            # created concurrently by another request
            existing = session.exec(select(Tag).where(Tag.name == trimmed)).one()
            return existing, False
    logger.info("created tag id=%s name=%r", tag.id, tag.name)
    return tag, True


def delete_tag(session: Session, actor: Actor, tag_id: int) -> None:
    """Admin only. Removes every task association before the tag itself."""
    require_delete_tag(actor)
    with unit_of_work(session, "delete tag"):
        tag = session.get(Tag, tag_id)
        if tag is None:
            raise NotFoundError("Tag not found")
        links = session.exec(select(TaskTag).where(TaskTag.tag_id == tag_id)).all()
        for link in links:
            session.delete(link)
        session.flush()
        session.delete(tag)
    logger.info("deleted tag id=%s (%d task links) by user=%s", tag_id, len(links), actor.id)
