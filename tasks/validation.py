"""Task field constants and validation."""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

TASK_TYPES = (
    'Workshop',
    'Hackathon',
    'Meetup',
    'Part-time Job',
    'Full-time Job',
    'Hourly Job',
)

# Event-style tasks happen somewhere at some time
LOCATION_TASK_TYPES = frozenset({'Workshop', 'Hackathon', 'Meetup'})

STATUS_OPEN = 'Open'
STATUS_IN_PROGRESS = 'In Progress'
STATUS_PENDING_STREAM_START = 'Pending Stream Start'
STATUS_COMPLETED = 'Completed'
STATUS_CLOSED = 'Closed'
STATUS_CANCELLED = 'Cancelled'

TASK_STATUSES = (
    STATUS_OPEN,
    STATUS_IN_PROGRESS,
    STATUS_PENDING_STREAM_START,
    STATUS_COMPLETED,
    STATUS_CLOSED,
    STATUS_CANCELLED,
)

REQUIRED_FIELDS = ('title', 'description', 'type', 'budget')

# Largest value an INT8 column holds
INT8_MAX = 2 ** 63 - 1


class TaskValidationError(ValueError):
    """Raised when task input is missing or malformed."""
    pass


def requires_location_date(task_type: Optional[str]) -> bool:
    """Whether tasks of this type need a location and a date."""
    return task_type in LOCATION_TASK_TYPES


def parse_budget(value: Any) -> Decimal:
    """Parse a budget into a finite Decimal.

    Raises:
        TaskValidationError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise TaskValidationError("Budget must be a valid number")
    try:
        budget = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise TaskValidationError("Budget must be a valid number")
    if not budget.is_finite():
        raise TaskValidationError("Budget must be a valid number")
    return budget


def parse_date(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime into a naive UTC datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise TaskValidationError(f"Invalid date: {value}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_optional_int(value: Any, field: str) -> Optional[int]:
    """Parse a count stored in an INT8 column.

    Raises:
        TaskValidationError: If the value is not a whole number between 0 and INT8_MAX
    """
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise TaskValidationError(f"{field} must be a number")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise TaskValidationError(f"{field} must be a number")
    if not number.is_finite() or number != number.to_integral_value():
        raise TaskValidationError(f"{field} must be a whole number")
    if not 0 <= number <= INT8_MAX:
        raise TaskValidationError(f"{field} must be between 0 and {INT8_MAX}")
    return int(number)


def normalize_kpis(kpis: Optional[List[Dict[str, Any]]]) -> Optional[List[Dict[str, Any]]]:
    """Validate KPI definitions.

    Returns None when no KPI list was supplied, which callers treat as
    "leave KPIs alone" on update.
    """
    if kpis is None:
        return None

    normalized = []
    for kpi in kpis:
        name = (kpi.get('name') or '').strip()
        target = kpi.get('target')
        if not name or target is None or str(target).strip() == '':
            raise TaskValidationError("Each KPI needs a name and a target")
        normalized.append({
            'name': name,
            'target': str(target).strip(),
            'description': kpi.get('description') or None
        })
    return normalized


def validate_task(fields: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate and normalize task fields.

    Args:
        fields: Raw task fields (title, description, type, budget, location,
            date, status, stream_duration, max_applicants, kpis)
        partial: When True only the supplied fields are validated; used for
            updates where the caller merges with the stored row

    Returns:
        Dict with normalized values for the supplied fields

    Raises:
        TaskValidationError: On missing or invalid input
    """
    if not partial:
        missing = [
            name for name in REQUIRED_FIELDS
            if fields.get(name) is None or str(fields.get(name)).strip() == ''
        ]
        if missing:
            raise TaskValidationError("Missing required fields")

    cleaned: Dict[str, Any] = {}

    for name in ('title', 'description'):
        if fields.get(name) is not None:
            value = str(fields[name]).strip()
            if not value:
                raise TaskValidationError(f"{name.capitalize()} cannot be empty")
            cleaned[name] = value

    if fields.get('type') is not None:
        if fields['type'] not in TASK_TYPES:
            raise TaskValidationError(f"Invalid task type: {fields['type']}")
        cleaned['type'] = fields['type']

    if fields.get('budget') is not None:
        cleaned['budget'] = parse_budget(fields['budget'])

    if fields.get('status') is not None:
        if fields['status'] not in TASK_STATUSES:
            raise TaskValidationError(f"Invalid task status: {fields['status']}")
        cleaned['status'] = fields['status']

    if 'location' in fields:
        location = fields.get('location')
        cleaned['location'] = location.strip() if isinstance(location, str) and location.strip() else None

    if 'date' in fields:
        cleaned['date'] = parse_date(fields.get('date'))

    if 'stream_duration' in fields:
        cleaned['stream_duration'] = parse_optional_int(fields.get('stream_duration'), 'Stream duration')

    if 'max_applicants' in fields:
        cleaned['max_applicants'] = parse_optional_int(fields.get('max_applicants'), 'Max applicants')

    if 'kpis' in fields:
        cleaned['kpis'] = normalize_kpis(fields.get('kpis'))

    return cleaned


def apply_location_rules(task: Dict[str, Any]) -> Dict[str, Any]:
    """Enforce location/date for event tasks and clear them for the rest.

    Args:
        task: Merged task fields containing at least 'type'

    Raises:
        TaskValidationError: If an event task lacks a location or a date
    """
    if requires_location_date(task.get('type')):
        if not task.get('location') or not task.get('date'):
            raise TaskValidationError(
                f"Location and date are required for {task['type']} tasks"
            )
    else:
        task['location'] = None
        task['date'] = None
    return task
