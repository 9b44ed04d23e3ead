# errors.py

"""Error kinds raised by the task core.

Each kind carries the HTTP status the boundary layer should answer with and
a short message that is safe to show to the caller.
"""

from __future__ import annotations

from typing import Dict


class TaskTrailError(Exception):
    status_code = 500
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.message}


class ValidationError(TaskTrailError):
    status_code = 400
    default_message = "Invalid request"


class AuthorizationError(TaskTrailError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(TaskTrailError):
    status_code = 404
    default_message = "Not found"


class ConflictError(TaskTrailError):
    status_code = 409
    default_message = "Conflict"


class InternalError(TaskTrailError):
    """Unexpected failure. The message never carries the underlying detail."""

    status_code = 500
    default_message = "Internal error"
