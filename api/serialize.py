"""Response shaping: snake_case rows to the camelCase wire format."""

from typing import Any

def camel_case(key: str) -> str:
    """Convert a snake_case key to camelCase."""
    head, *rest = key.split('_')
    return head + ''.join(part[:1].upper() + part[1:] for part in rest)

def camelize(value: Any) -> Any:
    """Recursively rename dict keys to camelCase.

    Values are left alone; FastAPI's encoder renders UUIDs, Decimals and
    datetimes.
    """
    if isinstance(value, dict):
        return {camel_case(str(k)): camelize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [camelize(item) for item in value]
    return value
