"""Top-level requirement list made of loose requirements and groups."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from .model import GroupEntry, ListEntry, LooseEntry, UserGroup, entry_from_wire, entry_to_wire
from .ordering import move

ROOT = "root"


class ListOrder:
    """Ordered sequence of :data:`ListEntry` values.

    Together with the group registry it keeps every requirement exactly once
    either as a loose entry here or inside one group.
    """

    def __init__(self, entries: Iterable[ListEntry] = ()) -> None:
        self._entries: list[ListEntry] = list(entries)

    @classmethod
    def from_wire(cls, values: Iterable[Any]) -> ListOrder:
        """Build an order from its persisted ``int | str`` form."""
        return cls(entry_from_wire(value) for value in values)

    @classmethod
    def of_requirements(cls, req_ids: Iterable[int]) -> ListOrder:
        return cls(LooseEntry(req_id) for req_id in req_ids)

    def to_wire(self) -> list[int | str]:
        """Return the persisted ``int | str`` form of the order."""
        return [entry_to_wire(entry) for entry in self._entries]

    # access ----------------------------------------------------------
    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ListEntry]:
        return iter(self._entries)

    def __contains__(self, entry: object) -> bool:
        return entry in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ListOrder):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"ListOrder({self.to_wire()!r})"

    @property
    def entries(self) -> tuple[ListEntry, ...]:
        return tuple(self._entries)

    def index(self, entry: ListEntry) -> int | None:
        """Return the position of ``entry`` or ``None`` when absent."""
        try:
            return self._entries.index(entry)
        except ValueError:
            return None

    def loose_ids(self) -> list[int]:
        """Return requirement ids that sit directly in the list."""
        return [e.requirement_id for e in self._entries if isinstance(e, LooseEntry)]

    def group_ids(self) -> list[str]:
        return [e.group_id for e in self._entries if isinstance(e, GroupEntry)]

    def flatten(self, groups: Mapping[str, UserGroup]) -> list[int]:
        """Return requirement ids with every group expanded in place.

        Collapsed groups are expanded as well; collapsing only affects
        presentation.
        """
        flat: list[int] = []
        for entry in self._entries:
            match entry:
                case LooseEntry(requirement_id=req_id):
                    flat.append(req_id)
                case GroupEntry(group_id=group_id):
                    group = groups.get(group_id)
                    if group is not None:
                        flat.extend(group.requirement_ids)
        return flat

    # mutation --------------------------------------------------------
    def reorder(self, from_index: int, to_index: int) -> bool:
        """Move the entry at ``from_index`` to ``to_index``."""
        return move(self._entries, from_index, to_index)

    def insert(self, index: int, entry: ListEntry) -> None:
        self._entries.insert(index, entry)

    def append(self, entry: ListEntry) -> None:
        self._entries.append(entry)

    def remove(self, entry: ListEntry) -> bool:
        """Remove ``entry`` and report whether it was present."""
        index = self.index(entry)
        if index is None:
            return False
        del self._entries[index]
        return True

    def splice(self, index: int, entries: Iterable[ListEntry]) -> None:
        """Replace the entry at ``index`` with ``entries``."""
        self._entries[index : index + 1] = list(entries)

    def replace(self, entries: Iterable[ListEntry]) -> None:
        self._entries = list(entries)

    def normalize(self, catalog_ids: Iterable[int], groups: dict[str, UserGroup]) -> bool:
        """Repair the order in place so every invariant holds.

        Unknown or duplicate requirement ids are dropped (from the list and
        from groups), group entries without a group are removed, groups
        missing from the list are appended, and requirements not placed
        anywhere are appended in catalog order. Returns ``True`` when
        anything changed.
        """
        known = list(catalog_ids)
        known_set = set(known)
        seen: set[int] = set()
        changed = False

        for group in groups.values():
            kept: list[int] = []
            for req_id in group.requirement_ids:
                if req_id in known_set and req_id not in seen:
                    kept.append(req_id)
                    seen.add(req_id)
            if kept != group.requirement_ids:
                group.requirement_ids = kept
                changed = True

        entries: list[ListEntry] = []
        placed_groups: set[str] = set()
        for entry in self._entries:
            match entry:
                case LooseEntry(requirement_id=req_id):
                    if req_id in known_set and req_id not in seen:
                        seen.add(req_id)
                        entries.append(entry)
                        continue
                case GroupEntry(group_id=group_id):
                    if group_id in groups and group_id not in placed_groups:
                        placed_groups.add(group_id)
                        entries.append(entry)
                        continue
            changed = True

        for group_id in groups:
            if group_id not in placed_groups:
                entries.append(GroupEntry(group_id))
                changed = True
        for req_id in known:
            if req_id not in seen:
                seen.add(req_id)
                entries.append(LooseEntry(req_id))
                changed = True

        self._entries = entries
        return changed


@dataclass(frozen=True)
class MoveResult:
    """Describe which containers a move touched."""

    order_changed: bool = False
    groups_changed: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.order_changed or bool(self.groups_changed)


def container_of(
    order: ListOrder, groups: Mapping[str, UserGroup], item: int | str
) -> str | None:
    """Return :data:`ROOT`, the owning group id, or ``None`` for unknown items."""
    if isinstance(item, str):
        return ROOT if GroupEntry(item) in order and item in groups else None
    if LooseEntry(item) in order:
        return ROOT
    for group_id, group in groups.items():
        if item in group.requirement_ids:
            return group_id
    return None


def _as_entry(item: int | str) -> ListEntry:
    return GroupEntry(item) if isinstance(item, str) else LooseEntry(item)


def move_item(
    order: ListOrder,
    groups: Mapping[str, UserGroup],
    active_id: int | str,
    over_id: int | str,
) -> MoveResult:
    """Move ``active_id`` relative to ``over_id`` resolving positions now.

    * a requirement dropped on a group header joins the end of that group;
    * items sharing a container are reordered within it;
    * a requirement over a requirement of another container leaves its
      container and is inserted before ``over_id``.

    Groups only ever move at the top level.
    """
    if active_id == over_id or isinstance(active_id, bool) or isinstance(over_id, bool):
        return MoveResult()
    active_container = container_of(order, groups, active_id)
    over_container = container_of(order, groups, over_id)
    if active_container is None or over_container is None:
        return MoveResult()

    if isinstance(active_id, int) and isinstance(over_id, str):
        target = groups[over_id]
        changed = _detach(order, groups, active_id, active_container)
        target.requirement_ids.append(active_id)
        return MoveResult(
            order_changed=active_container == ROOT,
            groups_changed=tuple(dict.fromkeys(changed + [over_id])),
        )

    if active_container == over_container:
        if active_container == ROOT:
            from_index = order.index(_as_entry(active_id))
            to_index = order.index(_as_entry(over_id))
            if from_index is None or to_index is None:
                return MoveResult()
            return MoveResult(order_changed=order.reorder(from_index, to_index))
        members = groups[active_container].requirement_ids
        moved = move(members, members.index(active_id), members.index(over_id))
        return MoveResult(groups_changed=(active_container,) if moved else ())

    if isinstance(active_id, str):
        return MoveResult()

    changed = _detach(order, groups, active_id, active_container)
    if over_container == ROOT:
        index = order.index(LooseEntry(over_id))
        order.insert(len(order) if index is None else index, LooseEntry(active_id))
    else:
        members = groups[over_container].requirement_ids
        members.insert(members.index(over_id), active_id)
        changed.append(over_container)
    return MoveResult(
        order_changed=ROOT in (active_container, over_container),
        groups_changed=tuple(changed),
    )


def _detach(
    order: ListOrder, groups: Mapping[str, UserGroup], req_id: int, container: str
) -> list[str]:
    if container == ROOT:
        order.remove(LooseEntry(req_id))
        return []
    groups[container].requirement_ids.remove(req_id)
    return [container]
