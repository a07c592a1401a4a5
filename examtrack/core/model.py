"""Domain models for exam requirements and the learner's tracking state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias


class Category(str, Enum):
    """Enumerate syllabus categories."""

    GENERAL = "Geral"
    SELF_DEFENSE = "Defesa Pessoal"
    TAKEDOWN = "Queda"
    SWEEP = "Raspagem"
    SUBMISSION = "Finalização"
    DEFENSE = "Defesa"
    GUARD_PASS = "Passagem"
    ESCAPE = "Saída"


class LearningStatus(str, Enum):
    """Enumerate mastery levels a learner can assign to a requirement."""

    TODO = "todo"
    LEARNING = "learning"
    DONE = "done"


class MediaType(str, Enum):
    """Enumerate supported study media kinds."""

    VIDEO = "video"
    LINK = "link"


QTD_NONE = "-"
QTD_ALL = "TODOS"


@dataclass(frozen=True)
class Requirement:
    """Represent one graded syllabus item. Never mutated at runtime."""

    id: int
    order: int
    name: str
    qtd: str | int
    category: Category


@dataclass
class MediaFolder:
    """Named bucket for media items of a single requirement."""

    id: str
    name: str


@dataclass
class MediaItem:
    """Video or link attached to a requirement."""

    id: str
    type: MediaType
    title: str
    url: str
    notes: str | None = None
    chapters: str | None = None
    folder_id: str | None = None
    display_order: int = 0


@dataclass
class UserRequirementState:
    """Learner-owned state of one requirement."""

    req_id: int
    status: LearningStatus = LearningStatus.TODO
    notes: str = ""
    media: list[MediaItem] = field(default_factory=list)
    folders: list[MediaFolder] = field(default_factory=list)

    def find_media(self, media_id: str) -> MediaItem | None:
        """Return media item ``media_id`` or ``None``."""
        for item in self.media:
            if item.id == media_id:
                return item
        return None

    def find_folder(self, folder_id: str) -> MediaFolder | None:
        """Return folder ``folder_id`` or ``None``."""
        for folder in self.folders:
            if folder.id == folder_id:
                return folder
        return None


@dataclass
class UserGroup:
    """User-defined, collapsible bucket of requirements."""

    id: str
    name: str
    requirement_ids: list[int] = field(default_factory=list)
    collapsed: bool = False


@dataclass(frozen=True, slots=True)
class LooseEntry:
    """Top-level list entry holding a single requirement."""

    requirement_id: int


@dataclass(frozen=True, slots=True)
class GroupEntry:
    """Top-level list entry standing for a whole group."""

    group_id: str


ListEntry: TypeAlias = LooseEntry | GroupEntry


def entry_from_wire(value: Any) -> ListEntry:
    """Decode a persisted list-order element (``int`` or group ``str``)."""
    if isinstance(value, bool):
        raise TypeError(f"invalid list entry: {value!r}")
    if isinstance(value, int):
        return LooseEntry(value)
    if isinstance(value, str) and value:
        return GroupEntry(value)
    raise TypeError(f"invalid list entry: {value!r}")


def entry_to_wire(entry: ListEntry) -> int | str:
    """Encode ``entry`` into its persisted ``int | str`` form."""
    match entry:
        case LooseEntry(requirement_id=req_id):
            return req_id
        case GroupEntry(group_id=group_id):
            return group_id
    raise TypeError(f"unknown list entry: {entry!r}")


def normalize_qtd(value: Any) -> str | int:
    """Return the canonical ``qtd`` value: ``"-"``, ``"TODOS"`` or an ``int``."""
    if isinstance(value, bool):
        raise ValueError(f"invalid qtd: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"invalid qtd: {value}")
        return value
    if isinstance(value, str):
        text = value.strip()
        if text in (QTD_NONE, QTD_ALL):
            return text
        if text.isdigit():
            return int(text)
    raise ValueError(f"invalid qtd: {value!r}")


def requirement_from_dict(data: dict[str, Any]) -> Requirement:
    """Create :class:`Requirement` from a catalog entry."""
    for name in ("id", "name", "category"):
        if name not in data:
            raise KeyError(f"missing required field: {name}")
    try:
        req_id = int(data["id"])
    except (TypeError, ValueError) as exc:
        raise TypeError("id must be an integer") from exc
    try:
        order = int(data.get("order", req_id))
    except (TypeError, ValueError) as exc:
        raise TypeError("order must be an integer") from exc
    try:
        category = Category(data["category"])
    except ValueError as exc:
        raise ValueError(f"invalid category: {data['category']}") from exc
    return Requirement(
        id=req_id,
        order=order,
        name=str(data["name"]),
        qtd=normalize_qtd(data.get("qtd", QTD_NONE)),
        category=category,
    )


def requirement_to_dict(req: Requirement) -> dict[str, Any]:
    """Convert ``req`` into a plain ``dict`` suitable for JSON storage."""
    return {
        "id": req.id,
        "order": req.order,
        "name": req.name,
        "qtd": req.qtd,
        "category": req.category.value,
    }


# ---------------------------------------------------------------------------
# remote rows


def progress_row(state: UserRequirementState) -> dict[str, Any]:
    """Return the ``user_progress`` row mirroring ``state``."""
    return {
        "requirement_id": state.req_id,
        "status": state.status.value,
        "notes": state.notes,
    }


def folder_row(req_id: int, folder: MediaFolder) -> dict[str, Any]:
    """Return the ``user_folders`` row mirroring ``folder``."""
    return {"id": folder.id, "requirement_id": req_id, "name": folder.name}


def media_row(req_id: int, item: MediaItem) -> dict[str, Any]:
    """Return the ``user_media`` row mirroring ``item``."""
    return {
        "id": item.id,
        "requirement_id": req_id,
        "type": item.type.value,
        "title": item.title,
        "url": item.url,
        "notes": item.notes,
        "chapters": item.chapters,
        "folder_id": item.folder_id,
        "display_order": item.display_order,
    }


def group_row(group: UserGroup) -> dict[str, Any]:
    """Return the ``user_groups`` row mirroring ``group``."""
    return {
        "id": group.id,
        "name": group.name,
        "requirement_ids": list(group.requirement_ids),
        "collapsed": group.collapsed,
    }


def media_from_row(row: dict[str, Any]) -> MediaItem:
    """Create :class:`MediaItem` from a ``user_media`` row."""
    return MediaItem(
        id=str(row["id"]),
        type=MediaType(row.get("type") or MediaType.VIDEO.value),
        title=str(row.get("title") or ""),
        url=str(row.get("url") or ""),
        notes=row.get("notes") or None,
        chapters=row.get("chapters") or None,
        folder_id=row.get("folder_id") or None,
        display_order=int(row.get("display_order") or 0),
    )


def group_from_row(row: dict[str, Any]) -> UserGroup:
    """Create :class:`UserGroup` from a ``user_groups`` row."""
    ids: list[int] = []
    for raw in row.get("requirement_ids") or []:
        req_id = int(raw)
        if req_id not in ids:
            ids.append(req_id)
    return UserGroup(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        requirement_ids=ids,
        collapsed=bool(row.get("collapsed", False)),
    )
