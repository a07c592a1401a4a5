"""Export and import of the learner's data as a self-describing document."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..util.ids import IdFactory, new_id
from ..util.time import utc_now_iso
from .catalog import Catalog
from .list_order import ListOrder
from .model import (
    GroupEntry,
    LearningStatus,
    ListEntry,
    LooseEntry,
    MediaFolder,
    MediaItem,
    MediaType,
    UserGroup,
    UserRequirementState,
    requirement_to_dict,
)
from .schema import SNAPSHOT_SCHEMA, validate

SNAPSHOT_VERSION = "1.0"


# ---------------------------------------------------------------------------
# export


def _media_to_dict(item: MediaItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "type": item.type.value,
        "title": item.title,
        "url": item.url,
        "notes": item.notes,
        "chapters": item.chapters,
        "folderId": item.folder_id,
        "displayOrder": item.display_order,
    }


def state_to_dict(state: UserRequirementState) -> dict[str, Any]:
    """Convert ``state`` into its snapshot representation."""
    return {
        "reqId": state.req_id,
        "status": state.status.value,
        "notes": state.notes,
        "media": [_media_to_dict(item) for item in state.media],
        "folders": [{"id": f.id, "name": f.name} for f in state.folders],
    }


def group_to_dict(group: UserGroup) -> dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "requirementIds": list(group.requirement_ids),
        "collapsed": group.collapsed,
    }


def build_snapshot(
    catalog: Catalog,
    states: Mapping[int, UserRequirementState],
    groups: Mapping[str, UserGroup],
    order: ListOrder,
) -> dict[str, Any]:
    """Return a JSON-compatible snapshot of everything the user created."""
    return {
        "version": SNAPSHOT_VERSION,
        "exportedAt": utc_now_iso(),
        "requirements": [requirement_to_dict(req) for req in catalog],
        "userState": {
            str(req_id): state_to_dict(state) for req_id, state in states.items()
        },
        "groups": {group_id: group_to_dict(group) for group_id, group in groups.items()},
        "listOrder": order.to_wire(),
    }


# ---------------------------------------------------------------------------
# import


@dataclass
class ImportedData:
    """User data decoded from a snapshot with freshly assigned identifiers."""

    states: list[UserRequirementState] = field(default_factory=list)
    groups: list[UserGroup] = field(default_factory=list)
    list_order: list[ListEntry] = field(default_factory=list)


def _import_state(
    req_id: int, raw: Mapping[str, Any], id_factory: IdFactory
) -> UserRequirementState:
    folder_ids: dict[str, str] = {}
    folders: list[MediaFolder] = []
    for raw_folder in raw.get("folders") or []:
        folder = MediaFolder(id=id_factory(), name=raw_folder["name"])
        folder_ids[raw_folder["id"]] = folder.id
        folders.append(folder)

    media: list[MediaItem] = []
    for raw_item in raw.get("media") or []:
        old_folder = raw_item.get("folderId")
        media.append(
            MediaItem(
                id=id_factory(),
                type=MediaType(raw_item["type"]),
                title=raw_item["title"],
                url=raw_item["url"],
                notes=raw_item.get("notes") or None,
                chapters=raw_item.get("chapters") or None,
                folder_id=folder_ids.get(old_folder) if old_folder else None,
                display_order=int(raw_item.get("displayOrder", len(media) + 1)),
            )
        )
    # progress is intentionally not imported
    return UserRequirementState(
        req_id=req_id,
        status=LearningStatus.TODO,
        notes=raw.get("notes") or "",
        media=media,
        folders=folders,
    )


def parse_snapshot(
    data: Any, catalog: Catalog, *, id_factory: IdFactory = new_id
) -> ImportedData:
    """Validate ``data`` and decode it for the current catalog.

    Folder, media and group identifiers are replaced with fresh ones so that
    importing someone else's export never collides with existing rows.
    Learning status is reset to ``todo`` while notes and media are kept.
    Requirements unknown to ``catalog`` are skipped.

    Raises :class:`ValueError` when ``data`` does not match
    :data:`~examtrack.core.schema.SNAPSHOT_SCHEMA`.
    """
    validate(data, SNAPSHOT_SCHEMA)
    imported = ImportedData()

    for key, raw in data["userState"].items():
        req_id = int(raw.get("reqId", key))
        if req_id not in catalog:
            continue
        imported.states.append(_import_state(req_id, raw, id_factory))

    group_ids: dict[str, str] = {}
    for old_id, raw in data["groups"].items():
        group = UserGroup(
            id=id_factory(),
            name=raw["name"],
            requirement_ids=[
                req_id for req_id in dict.fromkeys(raw["requirementIds"]) if req_id in catalog
            ],
            collapsed=bool(raw.get("collapsed", False)),
        )
        group_ids[old_id] = group.id
        raw_id = raw.get("id")
        if raw_id and raw_id != old_id:
            group_ids.setdefault(raw_id, group.id)
        imported.groups.append(group)

    for value in data.get("listOrder") or []:
        if isinstance(value, str):
            if value in group_ids:
                imported.list_order.append(GroupEntry(group_ids[value]))
        elif value in catalog:
            imported.list_order.append(LooseEntry(value))
    return imported


__all__ = [
    "SNAPSHOT_VERSION",
    "ImportedData",
    "build_snapshot",
    "group_to_dict",
    "parse_snapshot",
    "state_to_dict",
]
