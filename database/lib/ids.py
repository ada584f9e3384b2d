"""Helpers for UUID primary keys."""
from typing import Any, Optional
from uuid import UUID

def parse_uuid(value: Any) -> Optional[UUID]:
    """Parse an id coming from a URL or request body.

    Returns None when the value is not a well-formed UUID, letting callers
    report it the same way as an unknown id.
    """
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None
