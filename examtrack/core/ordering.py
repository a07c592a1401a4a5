"""Ordering primitives shared by the requirement list and media sub-lists."""

from __future__ import annotations

from collections.abc import Hashable, MutableSequence
from typing import TypeVar

T = TypeVar("T")

__all__ = ["move", "move_by_identity"]


def move(items: MutableSequence[T], from_index: int, to_index: int) -> bool:
    """Move the element at ``from_index`` so that it ends up at ``to_index``.

    Negative or out-of-range indexes leave ``items`` untouched and return
    ``False``.
    """
    size = len(items)
    if not (0 <= from_index < size and 0 <= to_index < size):
        return False
    if from_index == to_index:
        return False
    item = items.pop(from_index)
    items.insert(to_index, item)
    return True


def move_by_identity(items: MutableSequence[Hashable], active: Hashable, over: Hashable) -> bool:
    """Move ``active`` onto the current position of ``over``.

    Indexes are resolved at call time so the move stays correct after any
    structural change made earlier in the same tick.
    """
    try:
        from_index = items.index(active)
        to_index = items.index(over)
    except ValueError:
        return False
    return move(items, from_index, to_index)
