"""State container behind the requirement list.

:class:`ExamTracker` is the only entry point collaborators use to read and
change the learner's data. Each operation updates in-memory state right away
and then hands the resulting rows to the :class:`~examtrack.sync.SyncLayer`,
which mirrors them remotely without ever undoing the local change.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from copy import deepcopy
from typing import Any

from ..core.catalog import Catalog
from ..core.entity_store import EntityStore
from ..core.groups import GroupRegistry
from ..core.list_order import ListOrder, move_item
from ..core.model import (
    LearningStatus,
    ListEntry,
    MediaFolder,
    MediaItem,
    MediaType,
    Requirement,
    UserGroup,
    UserRequirementState,
    folder_row,
    group_from_row,
    group_row,
    media_from_row,
    media_row,
    progress_row,
)
from ..core.selection import SelectionEngine
from ..core.snapshot import build_snapshot, parse_snapshot
from ..log import logger
from ..remote.base import FOLDERS, GROUPS, MEDIA, PROGRESS, RemoteStoreError
from ..sync import RemoteData, SyncLayer
from ..telemetry import IMPORT, IMPORT_FAILED, INIT, INIT_FAILED, log_event
from ..util.ids import IdFactory, new_id


def _states_from_rows(data: RemoteData) -> list[UserRequirementState]:
    states: dict[int, UserRequirementState] = {}

    def ensure(req_id: Any) -> UserRequirementState:
        key = int(req_id)
        state = states.get(key)
        if state is None:
            state = states[key] = UserRequirementState(req_id=key)
        return state

    for row in data.progress:
        state = ensure(row["requirement_id"])
        try:
            state.status = LearningStatus(row.get("status") or LearningStatus.TODO.value)
        except ValueError:
            logger.warning("Unknown status %r for requirement %s", row.get("status"), state.req_id)
        state.notes = row.get("notes") or ""
    for row in data.folders:
        ensure(row["requirement_id"]).folders.append(
            MediaFolder(id=str(row["id"]), name=str(row.get("name") or ""))
        )
    for row in data.media:
        ensure(row["requirement_id"]).media.append(media_from_row(row))
    return list(states.values())


class ExamTracker:
    """Explicit state container for the requirement list engine."""

    def __init__(
        self,
        catalog: Catalog,
        sync: SyncLayer,
        *,
        id_factory: IdFactory = new_id,
    ) -> None:
        self._catalog = catalog
        self._sync = sync
        self._order = ListOrder.of_requirements(catalog.ids())
        self._groups = GroupRegistry(self._order, catalog, id_factory=id_factory)
        self._store = EntityStore(catalog, id_factory=id_factory)
        self._selection = SelectionEngine(self.flatten)
        self._id_factory = id_factory

    # ------------------------------------------------------------------
    # read access

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def requirements(self) -> tuple[Requirement, ...]:
        return self._catalog.requirements

    def get_state(self, req_id: int) -> UserRequirementState:
        """Return a copy of the state of ``req_id`` (a default view if untouched)."""
        return self._store.get_state(req_id)

    @property
    def groups(self) -> dict[str, UserGroup]:
        """Return copies of all groups keyed by id."""
        return deepcopy(dict(self._groups.as_mapping()))

    def get_group(self, group_id: str) -> UserGroup | None:
        group = self._groups.get(group_id)
        return deepcopy(group) if group is not None else None

    @property
    def list_order(self) -> tuple[ListEntry, ...]:
        return self._order.entries

    def list_order_wire(self) -> list[int | str]:
        return self._order.to_wire()

    def flatten(self) -> list[int]:
        """Return requirement ids with groups expanded in place."""
        return self._order.flatten(self._groups.as_mapping())

    @property
    def selected_ids(self) -> list[int]:
        return self._selection.selected_ids

    @property
    def last_selected_id(self) -> int | None:
        return self._selection.last_selected_id

    @property
    def active_requirement_id(self) -> int | None:
        return self._selection.active_requirement_id

    @property
    def sync(self) -> SyncLayer:
        return self._sync

    # ------------------------------------------------------------------
    # session

    def init(self) -> bool:
        """Load all per-user state from the remote store.

        Safe to call again; each call replaces local state with the remote
        one. Returns ``False`` and leaves state untouched when there is no
        session or the remote store cannot be read.
        """
        if not self._sync.has_session:
            logger.info("No active session; keeping initial state")
            return False
        try:
            data = self._sync.fetch_all()
            states = _states_from_rows(data)
            groups = [group_from_row(row) for row in data.groups]
            settings = data.settings or {}
            raw_order = settings.get("list_order")
            order = ListOrder.from_wire(raw_order) if raw_order else None
        except (RemoteStoreError, KeyError, TypeError, ValueError) as exc:
            logger.error("Failed to load remote state: %s", exc)
            log_event(INIT_FAILED, {"error": str(exc)}, level=logging.ERROR)
            return False

        self._store.load(states)
        self._groups.load(groups)
        if order is None:
            self._order.replace(ListOrder.of_requirements(self._catalog.ids()))
        else:
            self._order.replace(order)
        if self._order.normalize(self._catalog.ids(), self._groups.mutable_groups):
            logger.info("Repaired stored list order")
        active = settings.get("active_requirement_id")
        self._selection.restore(settings.get("selected_ids") or [], active)
        self._selection.prune(self._catalog.ids())
        log_event(
            INIT,
            {
                "states": len(states),
                "groups": len(groups),
                "list_entries": len(self._order),
            },
        )
        return True

    def reset(self) -> None:
        """Return to the initial state (e.g. after signing out). Local only."""
        self._store.clear()
        self._groups.clear()
        self._order.replace(ListOrder.of_requirements(self._catalog.ids()))
        self._selection.restore([], None)

    def _sync_settings(self, **payload: Any) -> None:
        self._sync.upsert_settings(payload)

    def _sync_list_order(self) -> None:
        self._sync_settings(list_order=self._order.to_wire())

    # ------------------------------------------------------------------
    # selection

    def select_item(
        self, req_id: int, multi: bool = False, range_select: bool = False
    ) -> None:
        if not self._selection.select(req_id, multi=multi, range_select=range_select):
            return
        self._sync_settings(
            selected_ids=self._selection.selected_ids,
            active_requirement_id=self._selection.active_requirement_id,
        )

    def clear_selection(self) -> None:
        self._selection.clear()
        self._sync_settings(selected_ids=[])

    def set_active_requirement(self, req_id: int | None) -> None:
        if req_id is not None and (isinstance(req_id, bool) or req_id not in self._catalog):
            logger.debug("Ignoring unknown active requirement %s", req_id)
            return
        self._selection.set_active(req_id)
        self._sync_settings(active_requirement_id=req_id)

    # ------------------------------------------------------------------
    # grouping

    def create_group(self, name: str, member_ids: Iterable[int] | None = None) -> str | None:
        """Group ``member_ids`` (the current selection by default).

        Returns the new group id, or ``None`` when the request was invalid.
        The selection and the active requirement are cleared afterwards.
        """
        members = self._selection.selected_ids if member_ids is None else list(member_ids)
        group = self._groups.create_group(name, members)
        if group is None:
            return None
        self._selection.clear()
        self._selection.set_active(None)
        self._sync.upsert(GROUPS, [group_row(group)])
        self._sync_settings(
            list_order=self._order.to_wire(),
            selected_ids=[],
            active_requirement_id=None,
        )
        return group.id

    def ungroup(self, group_id: str) -> None:
        if self._groups.ungroup(group_id) is None:
            return
        self._sync.delete(GROUPS, group_id)
        self._sync_list_order()

    def rename_group(self, group_id: str, name: str) -> None:
        group = self._groups.rename(group_id, name)
        if group is not None:
            self._sync.upsert(GROUPS, [group_row(group)])

    def toggle_group_collapse(self, group_id: str) -> None:
        group = self._groups.toggle_collapse(group_id)
        if group is not None:
            self._sync.upsert(GROUPS, [group_row(group)])

    # ------------------------------------------------------------------
    # ordering

    def move_item(self, active_id: int | str, over_id: int | str) -> None:
        groups = self._groups.mutable_groups
        result = move_item(self._order, groups, active_id, over_id)
        if not result:
            return
        if result.order_changed:
            self._sync_list_order()
        rows = [group_row(groups[group_id]) for group_id in result.groups_changed]
        self._sync.upsert(GROUPS, rows)

    def reorder_list(self, from_index: int, to_index: int) -> None:
        if self._order.reorder(from_index, to_index):
            self._sync_list_order()

    # ------------------------------------------------------------------
    # progress

    def update_status(self, req_id: int, status: LearningStatus | str) -> None:
        state = self._store.set_status(req_id, status)
        if state is not None:
            self._sync.upsert(PROGRESS, [progress_row(state)])

    def update_notes(self, req_id: int, notes: str) -> None:
        state = self._store.set_notes(req_id, notes)
        if state is not None:
            self._sync.upsert(PROGRESS, [progress_row(state)])

    # ------------------------------------------------------------------
    # media

    def add_media(
        self,
        req_id: int,
        type: MediaType | str,
        title: str,
        url: str,
        folder_id: str | None = None,
        notes: str | None = None,
        chapters: str | None = None,
    ) -> str | None:
        item = self._store.add_media(req_id, type, title, url, folder_id, notes, chapters)
        if item is None:
            return None
        self._sync.upsert(MEDIA, [media_row(req_id, item)])
        return item.id

    def remove_media(self, req_id: int, media_id: str) -> None:
        if self._store.remove_media(req_id, media_id) is not None:
            self._sync.delete(MEDIA, media_id)

    def update_media(self, req_id: int, media_id: str, **fields: Any) -> None:
        """Apply a partial update (``title``, ``url``, ``notes``, ``chapters``, ``folder_id``)."""
        unknown = set(fields) - {"title", "url", "notes", "chapters", "folder_id"}
        if unknown:
            raise TypeError(f"unsupported media fields: {sorted(unknown)}")
        item = self._store.update_media(req_id, media_id, **fields)
        self._mirror_media(req_id, item)

    def update_media_notes(self, req_id: int, media_id: str, notes: str) -> None:
        self._mirror_media(req_id, self._store.update_media(req_id, media_id, notes=notes))

    def update_media_chapters(self, req_id: int, media_id: str, chapters: str) -> None:
        self._mirror_media(
            req_id, self._store.update_media(req_id, media_id, chapters=chapters)
        )

    def reorder_media(self, req_id: int, dragged_id: str, target_id: str) -> None:
        changed = self._store.reorder_media(req_id, dragged_id, target_id)
        self._sync.upsert(MEDIA, [media_row(req_id, item) for item in changed])

    def _mirror_media(self, req_id: int, item: MediaItem | None) -> None:
        if item is not None:
            self._sync.upsert(MEDIA, [media_row(req_id, item)])

    # ------------------------------------------------------------------
    # folders

    def create_folder(self, req_id: int, name: str) -> str | None:
        folder = self._store.create_folder(req_id, name)
        if folder is None:
            return None
        self._sync.upsert(FOLDERS, [folder_row(req_id, folder)])
        return folder.id

    def remove_folder(self, req_id: int, folder_id: str) -> None:
        removed = self._store.remove_folder(req_id, folder_id)
        if removed is None:
            return
        _folder, moved = removed
        self._sync.delete(FOLDERS, folder_id)
        self._sync.upsert(MEDIA, [media_row(req_id, item) for item in moved])

    # ------------------------------------------------------------------
    # export / import

    def export_data(self) -> str:
        """Serialise everything the user created into a JSON document."""
        snapshot = build_snapshot(
            self._catalog,
            self._store.states(),
            self._groups.as_mapping(),
            self._order,
        )
        return json.dumps(snapshot, ensure_ascii=False, indent=2)

    def import_data(self, snapshot: str | bytes | Mapping[str, Any]) -> bool:
        """Replace the user's data with ``snapshot``.

        Learning status is not restored: every imported requirement starts
        as ``todo`` while notes, media, folders, groups and list order are
        kept. Returns ``False`` when the document is not a valid snapshot.
        """
        try:
            data = json.loads(snapshot) if isinstance(snapshot, (str, bytes)) else snapshot
            imported = parse_snapshot(data, self._catalog, id_factory=self._id_factory)
        except (TypeError, ValueError) as exc:
            logger.warning("Import failed: %s", exc)
            log_event(IMPORT_FAILED, {"error": str(exc)}, level=logging.WARNING)
            return False

        previous_states = {req_id: deepcopy(state) for req_id, state in self._store.states().items()}
        previous_groups = list(self._groups)

        self._store.load(imported.states)
        self._groups.load(imported.groups)
        self._order.replace(imported.list_order)
        self._order.normalize(self._catalog.ids(), self._groups.mutable_groups)
        self._selection.restore([], None)

        self._mirror_import(previous_states, previous_groups)
        log_event(
            IMPORT,
            {"states": len(imported.states), "groups": len(imported.groups)},
        )
        return True

    def _mirror_import(
        self,
        previous_states: Mapping[int, UserRequirementState],
        previous_groups: list[str],
    ) -> None:
        for group_id in previous_groups:
            self._sync.delete(GROUPS, group_id)
        for state in previous_states.values():
            for item in state.media:
                self._sync.delete(MEDIA, item.id)
            for folder in state.folders:
                self._sync.delete(FOLDERS, folder.id)

        states = self._store.states()
        progress = [progress_row(state) for state in states.values()]
        progress.extend(
            progress_row(UserRequirementState(req_id=req_id))
            for req_id in previous_states
            if req_id not in states
        )
        self._sync.upsert(PROGRESS, progress)
        self._sync.upsert(
            FOLDERS,
            [folder_row(s.req_id, f) for s in states.values() for f in s.folders],
        )
        self._sync.upsert(
            MEDIA,
            [media_row(s.req_id, m) for s in states.values() for m in s.media],
        )
        self._sync.upsert(
            GROUPS, [group_row(group) for group in self._groups.as_mapping().values()]
        )
        self._sync_settings(
            list_order=self._order.to_wire(),
            selected_ids=[],
            active_requirement_id=None,
        )
