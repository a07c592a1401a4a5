"""In-memory store of the learner's per-requirement state."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from copy import deepcopy
from types import MappingProxyType
from typing import Any

from ..log import logger
from ..util.ids import IdFactory, new_id
from . import media as media_ops
from .catalog import Catalog
from .model import (
    LearningStatus,
    MediaFolder,
    MediaItem,
    MediaType,
    UserRequirementState,
)

_MISSING: Any = object()


def _coerce_enum(enum_cls: type, value: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


class EntityStore:
    """Hold :class:`UserRequirementState` objects keyed by requirement id.

    Every mutator returns the object(s) it changed, or ``None``/an empty list
    when the call was a no-op (unknown ids, invalid values), so the caller
    knows exactly what to mirror remotely.
    """

    def __init__(self, catalog: Catalog, *, id_factory: IdFactory = new_id) -> None:
        self._catalog = catalog
        self._id_factory = id_factory
        self._states: dict[int, UserRequirementState] = {}

    # access ----------------------------------------------------------
    def get_state(self, req_id: int) -> UserRequirementState:
        """Return a copy of the state of ``req_id`` or a default view."""
        state = self._states.get(req_id)
        if state is None:
            return UserRequirementState(req_id=req_id)
        return deepcopy(state)

    def states(self) -> Mapping[int, UserRequirementState]:
        """Return a read-only view of the states created so far."""
        return MappingProxyType(self._states)

    def load(self, states: Iterable[UserRequirementState]) -> None:
        """Replace every state, dropping requirements absent from the catalog."""
        loaded: dict[int, UserRequirementState] = {}
        for state in states:
            if state.req_id not in self._catalog:
                logger.debug("Dropping state of unknown requirement %s", state.req_id)
                continue
            folder_ids = {folder.id for folder in state.folders}
            for item in state.media:
                if item.folder_id is not None and item.folder_id not in folder_ids:
                    item.folder_id = None
            media_ops.sort_media(state)
            loaded[state.req_id] = state
        self._states = loaded

    def clear(self) -> None:
        self._states = {}

    def _ensure(self, req_id: int) -> UserRequirementState | None:
        if req_id not in self._catalog:
            logger.debug("Ignoring mutation of unknown requirement %s", req_id)
            return None
        state = self._states.get(req_id)
        if state is None:
            state = self._states[req_id] = UserRequirementState(req_id=req_id)
        return state

    # progress --------------------------------------------------------
    def set_status(
        self, req_id: int, status: LearningStatus | str
    ) -> UserRequirementState | None:
        value = _coerce_enum(LearningStatus, status)
        if value is None:
            logger.debug("Ignoring invalid status %r", status)
            return None
        state = self._ensure(req_id)
        if state is None:
            return None
        state.status = value
        return state

    def set_notes(self, req_id: int, notes: str) -> UserRequirementState | None:
        state = self._ensure(req_id)
        if state is None:
            return None
        state.notes = notes or ""
        return state

    # media -----------------------------------------------------------
    def add_media(
        self,
        req_id: int,
        type: MediaType | str,
        title: str,
        url: str,
        folder_id: str | None = None,
        notes: str | None = None,
        chapters: str | None = None,
    ) -> MediaItem | None:
        """Append a media item and return it."""
        media_type = _coerce_enum(MediaType, type)
        if media_type is None:
            logger.debug("Ignoring invalid media type %r", type)
            return None
        state = self._states.get(req_id)
        if folder_id and (state is None or state.find_folder(folder_id) is None):
            logger.debug("Ignoring media for unknown folder %s", folder_id)
            return None
        if state is None:
            state = self._ensure(req_id)
            if state is None:
                return None
        item = MediaItem(
            id=self._id_factory(),
            type=media_type,
            title=title,
            url=url,
            notes=notes or None,
            chapters=chapters or None,
            folder_id=folder_id or None,
            display_order=media_ops.next_display_order(state),
        )
        state.media.append(item)
        return item

    def remove_media(self, req_id: int, media_id: str) -> MediaItem | None:
        state = self._states.get(req_id)
        item = state.find_media(media_id) if state is not None else None
        if item is None:
            return None
        state.media.remove(item)
        return item

    def update_media(
        self,
        req_id: int,
        media_id: str,
        *,
        title: str = _MISSING,
        url: str = _MISSING,
        notes: str | None = _MISSING,
        chapters: str | None = _MISSING,
        folder_id: str | None = _MISSING,
    ) -> MediaItem | None:
        """Apply a partial update to one media item.

        ``folder_id=None`` moves the item to the root bucket; an unknown
        folder id rejects the whole update.
        """
        state = self._states.get(req_id)
        item = state.find_media(media_id) if state is not None else None
        if item is None:
            return None
        if folder_id is not _MISSING and folder_id and state.find_folder(folder_id) is None:
            logger.debug("Ignoring move of %s to unknown folder %s", media_id, folder_id)
            return None
        if title is not _MISSING:
            item.title = title
        if url is not _MISSING:
            item.url = url
        if notes is not _MISSING:
            item.notes = notes or None
        if chapters is not _MISSING:
            item.chapters = chapters or None
        if folder_id is not _MISSING:
            item.folder_id = folder_id or None
        return item

    def reorder_media(self, req_id: int, dragged_id: str, target_id: str) -> list[MediaItem]:
        state = self._states.get(req_id)
        if state is None:
            return []
        return media_ops.reorder_media(state, dragged_id, target_id)

    # folders ---------------------------------------------------------
    def create_folder(self, req_id: int, name: str) -> MediaFolder | None:
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            logger.debug("Ignoring folder with empty name")
            return None
        state = self._ensure(req_id)
        if state is None:
            return None
        folder = MediaFolder(id=self._id_factory(), name=name)
        state.folders.append(folder)
        return folder

    def remove_folder(
        self, req_id: int, folder_id: str
    ) -> tuple[MediaFolder, list[MediaItem]] | None:
        """Delete a folder moving its media to the root bucket.

        Returns the removed folder and the media items that were moved.
        """
        state = self._states.get(req_id)
        folder = state.find_folder(folder_id) if state is not None else None
        if folder is None:
            return None
        state.folders.remove(folder)
        moved: list[MediaItem] = []
        for item in state.media:
            if item.folder_id == folder_id:
                item.folder_id = None
                moved.append(item)
        return folder, moved
