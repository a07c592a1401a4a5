"""Ordering of media items inside one requirement.

Media are bucketed by ``folder_id`` (``None`` is the root bucket). Each item
carries an explicit ``display_order`` ordinal that is unique within its
requirement, so the order survives partial loads regardless of fetch order.
"""

from __future__ import annotations

from .model import MediaItem, UserRequirementState
from .ordering import move_by_identity

__all__ = [
    "bucket",
    "next_display_order",
    "partition",
    "reorder_media",
    "sort_media",
]


def sort_media(state: UserRequirementState) -> None:
    """Sort ``state.media`` by ordinal keeping insertion order for ties."""
    state.media.sort(key=lambda item: item.display_order)


def next_display_order(state: UserRequirementState) -> int:
    """Return the ordinal for a newly appended item."""
    return max((item.display_order for item in state.media), default=0) + 1


def bucket(state: UserRequirementState, folder_id: str | None) -> list[MediaItem]:
    """Return the items of one bucket in display order."""
    items = [item for item in state.media if item.folder_id == folder_id]
    items.sort(key=lambda item: item.display_order)
    return items


def partition(state: UserRequirementState) -> dict[str | None, list[MediaItem]]:
    """Return root items under ``None`` followed by each folder's items."""
    buckets: dict[str | None, list[MediaItem]] = {None: bucket(state, None)}
    for folder in state.folders:
        buckets[folder.id] = bucket(state, folder.id)
    return buckets


def reorder_media(
    state: UserRequirementState, dragged_id: str, target_id: str
) -> list[MediaItem]:
    """Move ``dragged_id`` onto the position of ``target_id``.

    Both items must live in the same bucket; moving across folders is a
    ``folder_id`` update, not a reorder. The ordinals already used by the
    bucket are handed out again in the new order so other buckets keep
    theirs. Returns the items whose ordinal changed.
    """
    dragged = state.find_media(dragged_id)
    target = state.find_media(target_id)
    if dragged is None or target is None or dragged is target:
        return []
    if dragged.folder_id != target.folder_id:
        return []

    items = bucket(state, dragged.folder_id)
    ordinals = sorted(item.display_order for item in items)
    if len(set(ordinals)) != len(ordinals):
        # repair duplicate ordinals left by older data
        base = next_display_order(state)
        ordinals = list(range(base, base + len(items)))
    ids = [item.id for item in items]
    if not move_by_identity(ids, dragged_id, target_id):
        return []

    by_id = {item.id: item for item in items}
    changed: list[MediaItem] = []
    for media_id, ordinal in zip(ids, ordinals):
        item = by_id[media_id]
        if item.display_order != ordinal:
            item.display_order = ordinal
            changed.append(item)
    sort_media(state)
    return changed
