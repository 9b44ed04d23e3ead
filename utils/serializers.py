# utils/serializers.py
"""Plain-dict views of stored rows, safe to hand to the response layer."""
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Iterable, List, Optional


def _iso(value) -> Optional[str]:
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    return value


def tag_to_dict(tag) -> Dict:
    return {"id": tag.id, "name": tag.name}


def file_to_dict(f) -> Dict:
    return {
        "id": f.id,
        "filename": f.filename,
        "original_filename": f.original_filename,
        "file_size": f.file_size,
        "mime_type": f.mime_type,
        "uploaded_by": f.uploaded_by,
        "created_at": _iso(f.created_at),
    }


def subtask_to_dict(st, files: Iterable = ()) -> Dict:
    return {
        "id": st.id,
        "title": st.title,
        "status": st.status,
        "created_at": _iso(st.created_at),
        "files": [file_to_dict(f) for f in files],
    }


def task_to_dict(
    task,
    *,
    assignee=None,
    division_user=None,
    creator=None,
    tags: Iterable = (),
    subtasks: Optional[List[Dict]] = None,
    files: Optional[Iterable] = None,
) -> Dict:
    """
    Hydrated task. ``subtasks`` are already-serialized dicts; pass None for
    ``subtasks``/``files`` to leave them out (list views).
    """
    out = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "priority": task.priority,
        "status": task.status,
        "assigned_to_div": task.assigned_to_div,
        "assigned_to_div_name": getattr(assignee, "name", None),
        "assigned_to_div_email": getattr(assignee, "email", None),
        "assigned_to_div_user": task.assigned_to_div_user,
        "assigned_to_div_user_name": getattr(division_user, "name", None),
        "created_by": task.created_by,
        "created_by_name": getattr(creator, "name", None),
        "assignment_date": _iso(task.assignment_date),
        "due_date": _iso(task.due_date),
        "notes": task.notes,
        "created_at": _iso(task.created_at),
        "tags": [tag_to_dict(t) for t in tags],
    }
    if subtasks is not None:
        out["subtasks"] = subtasks
    if files is not None:
        out["files"] = [file_to_dict(f) for f in files]
    return out


def history_to_dict(entry, user=None) -> Dict:
    return {
        "id": entry.id,
        "change_type": entry.change_type,
        "field_name": entry.field_name,
        "old_value": entry.old_value,
        "new_value": entry.new_value,
        "change_description": entry.change_description,
        "created_at": _iso(entry.created_at),
        "changed_by": entry.changed_by,
        "changed_by_name": getattr(user, "name", None),
        "changed_by_email": getattr(user, "email", None),
    }
