"""
Custom exception classes for the Collections Triage Service.

Services raise these plain exceptions; ``app.main`` maps them onto HTTP
responses with a ``{"error": ...}`` body.
"""
from typing import Any, Dict, List, Optional

from fastapi import status


class TriageError(Exception):
    """Base exception for collections triage errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, **context):
        self.detail = detail
        self.context = context
        super().__init__(detail)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {"error": self.detail}


class NotFoundError(TriageError):
    """Referenced entity id does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, kind: str, entity_id: str, **context):
        self.kind = kind
        self.entity_id = entity_id
        label = kind.replace("_", " ").capitalize()
        super().__init__(f"{label} not found", kind=kind, entity_id=entity_id, **context)


class ValidationException(TriageError):
    """Malformed or disallowed update payload."""

    status_code = 422

    def __init__(self, detail: str, field: Optional[str] = None, value: Optional[Any] = None):
        self.field = field
        self.value = value
        message = f"Validation failed: {detail}"
        if field:
            message = f"Validation failed for field '{field}': {detail}"
        super().__init__(message, field=field)


class InvalidTransitionError(TriageError):
    """Requested status change is not permitted from the current state."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, kind: str, entity_id: str, current: str, target: str):
        self.kind = kind
        self.entity_id = entity_id
        self.current = current
        self.target = target
        label = kind.replace("_", " ")
        super().__init__(
            f"Cannot move {label} from '{current}' to '{target}'",
            kind=kind,
            entity_id=entity_id,
            current=current,
            target=target,
        )


def format_validation_errors(errors: List[Dict[str, Any]]) -> str:
    """Collapse pydantic error dicts into one readable message."""
    parts = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "invalid payload"
