"""Common utility functions."""

from typing import Any


def get_value(obj: Any, key: str) -> Any:
    """Get value from dict or object attribute."""
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def mask_key(key: str) -> str:
    """Render a credential for logs, keeping only its last four characters."""
    if not key:
        return "<empty>"
    return f"...{key[-4:]}"


def split_csv(value: str | None) -> list[str]:
    """Split a comma separated env value, dropping blanks and duplicates."""
    if not value:
        return []
    items = []
    for item in value.split(","):
        item = item.strip()
        if item and item not in items:
            items.append(item)
    return items
