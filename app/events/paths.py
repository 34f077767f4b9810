"""Dotted-path access into event data.

``get_by_path(ctx, "payload.staff_user_id")`` walks nested mappings (and
sequences by integer index) and returns ``MISSING`` when a segment does
not resolve, so a stored ``None`` stays distinguishable from an absent
field.
"""

from collections.abc import Mapping, Sequence
from typing import Any


class _Missing:
    """Sentinel type for unresolved paths."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def get_by_path(data: Any, path: str) -> Any:
    """Resolve a dotted path against nested data.

    Args:
        data: Mapping/sequence/scalar structure (usually an event context)
        path: Dotted accessor such as ``payload.staff_user_id`` or ``payload.items.0``

    Returns:
        The resolved value, or ``MISSING`` if any segment is absent
    """
    if not path:
        return MISSING

    current = data
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            try:
                index = int(part)
            except ValueError:
                return MISSING
            if index < 0 or index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def is_present(value: Any) -> bool:
    """True unless the value is MISSING, None or an empty string."""
    return value is not MISSING and value is not None and value != ""
