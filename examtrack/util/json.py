"""JSON serialisation helpers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any


def make_json_safe(value: Any) -> Any:
    """Return a structure compatible with :func:`json.dumps`.

    Enums collapse to their values, dataclasses to dictionaries, sets to
    sorted lists and tuples to lists. Anything else that JSON cannot encode
    falls back to :func:`repr`.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return make_json_safe(value.value)
    if is_dataclass(value) and not isinstance(value, type):
        return make_json_safe(asdict(value))
    if isinstance(value, Mapping):
        return {str(key): make_json_safe(item) for key, item in value.items()}
    if isinstance(value, (set, frozenset)):
        items = [make_json_safe(item) for item in value]
        try:
            return sorted(items)
        except TypeError:
            return items
    if isinstance(value, (list, tuple)):
        return [make_json_safe(item) for item in value]
    return repr(value)
