"""Identifier helpers."""

from __future__ import annotations

from collections.abc import Callable
from uuid import uuid4

IdFactory = Callable[[], str]


def new_id() -> str:
    """Return a fresh opaque identifier for folders, media and groups."""
    return str(uuid4())
