# utils/changes.py
"""Field-level change detection for task updates.

Old and new values are normalized to a comparable form first: optional text
treats None, "" and whitespace-only alike, date-times are compared at second
precision in naive UTC. Equal values produce no Change, so nothing is written
or logged for them.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

from dateutil import parser

from errors import ValidationError
from models.common import TASK_PRIORITIES, TASK_STATUSES

NONE_TEXT = "None"
UNASSIGNED_TEXT = "Unassigned"

FIELD_LABELS = {
    "title": "Title",
    "description": "Description",
    "priority": "Priority",
    "status": "Status",
    "assigned_to_div": "Assigned division",
    "assigned_to_div_user": "Assigned division user",
    "due_date": "Due date",
    "notes": "Notes",
}

REFERENCE_FIELDS = ("assigned_to_div", "assigned_to_div_user")
ENUM_FIELDS = {"priority": TASK_PRIORITIES, "status": TASK_STATUSES}
OPTIONAL_TEXT_FIELDS = ("description", "notes")

# Applied in this order by the engine.
SCALAR_FIELDS = (
    "title", "description", "priority", "assigned_to_div",
    "assigned_to_div_user", "due_date", "status", "notes",
)


@dataclass(frozen=True)
class Change:
    field_name: str
    old_value: str
    new_value: str
    description: str
    # normalized value to persist
    value: Any = None


# ---- normalization ----

def normalize_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def normalize_title(value: Any) -> str:
    text = normalize_text(value)
    if text is None:
        raise ValidationError("Title is required")
    return text.strip()


def normalize_enum(field: str, value: Any) -> str:
    allowed = ENUM_FIELDS[field]
    if value not in allowed:
        raise ValidationError(f"Invalid {field}: {value!r} (expected one of {', '.join(allowed)})")
    return value


def normalize_datetime(value: Any) -> Optional[datetime]:
    """Parse to a naive-UTC datetime truncated to whole seconds."""
    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            value = parser.parse(value)
        except (ValueError, OverflowError):
            raise ValidationError(f"Invalid date: {value!r}")
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    elif not isinstance(value, datetime):
        raise ValidationError(f"Invalid date: {value!r}")

    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0)


def normalize_reference(field: str, value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}")


def format_datetime(value: Optional[datetime]) -> str:
    return value.isoformat(timespec="seconds") if value else NONE_TEXT


def describe(label: str, old: str, new: str, quoted: bool = False) -> str:
    if quoted:
        return f'{label} changed from "{old}" to "{new}"'
    return f"{label} changed from {old} to {new}"


# ---- detection ----

def detect_change(
    field: str,
    old: Any,
    new: Any,
    resolve_name: Optional[Callable[[int], Optional[str]]] = None,
) -> Optional[Change]:
    """
    Compare a stored value with a requested one for a single task field.

    Returns None when the values are equal after normalization. Reference
    fields need ``resolve_name`` to turn ids into display names; an id that
    resolves to nothing renders as "Unassigned".
    """
    label = FIELD_LABELS[field]

    if field == "title":
        new_v = normalize_title(new)
        if new_v == old:
            return None
        return Change(field, old or NONE_TEXT, new_v, describe(label, old or NONE_TEXT, new_v, quoted=True), new_v)

    if field in ENUM_FIELDS:
        new_v = normalize_enum(field, new)
        if new_v == old:
            return None
        return Change(field, old, new_v, describe(label, old, new_v), new_v)

    if field == "due_date":
        old_v, new_v = normalize_datetime(old), normalize_datetime(new)
        if old_v == new_v:
            return None
        old_s, new_s = format_datetime(old_v), format_datetime(new_v)
        return Change(field, old_s, new_s, describe(label, old_s, new_s), new_v)

    if field in REFERENCE_FIELDS:
        old_v, new_v = normalize_reference(field, old), normalize_reference(field, new)
        if old_v == new_v:
            return None
        resolve = resolve_name or (lambda _id: None)
        old_s = (resolve(old_v) if old_v is not None else None) or UNASSIGNED_TEXT
        new_s = (resolve(new_v) if new_v is not None else None) or UNASSIGNED_TEXT
        return Change(field, old_s, new_s, describe(label, old_s, new_s), new_v)

    if field in OPTIONAL_TEXT_FIELDS:
        old_v, new_v = normalize_text(old), normalize_text(new)
        if old_v == new_v:
            return None
        old_s, new_s = old_v or NONE_TEXT, new_v or NONE_TEXT
        return Change(field, old_s, new_s, describe(label, old_s, new_s, quoted=True), new_v)

    raise ValueError(f"No change rule for field {field!r}")
