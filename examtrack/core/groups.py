"""Registry of user-defined requirement groups."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from ..log import logger
from ..util.ids import IdFactory, new_id
from .catalog import Catalog
from .list_order import ListOrder
from .model import GroupEntry, LooseEntry, UserGroup


class GroupRegistry:
    """Own the groups and keep :class:`ListOrder` consistent with them.

    Creating a group pulls its members out of the list and puts a single
    group entry in their place; ungrouping does the reverse. Requirements are
    never removed, only the grouping construct.
    """

    def __init__(
        self,
        order: ListOrder,
        catalog: Catalog,
        *,
        id_factory: IdFactory = new_id,
    ) -> None:
        self._order = order
        self._catalog = catalog
        self._id_factory = id_factory
        self._groups: dict[str, UserGroup] = {}

    # access ----------------------------------------------------------
    def __len__(self) -> int:
        return len(self._groups)

    def __iter__(self) -> Iterator[str]:
        return iter(self._groups)

    def __contains__(self, group_id: object) -> bool:
        return group_id in self._groups

    def get(self, group_id: str) -> UserGroup | None:
        return self._groups.get(group_id)

    def as_mapping(self) -> Mapping[str, UserGroup]:
        """Return a read-only view of the groups keyed by id."""
        return MappingProxyType(self._groups)

    def group_of(self, req_id: int) -> str | None:
        """Return the id of the group containing ``req_id``."""
        for group_id, group in self._groups.items():
            if req_id in group.requirement_ids:
                return group_id
        return None

    # bulk ------------------------------------------------------------
    def load(self, groups: Iterable[UserGroup]) -> None:
        """Replace every group, e.g. after fetching them from the remote store."""
        self._groups = {group.id: group for group in groups}

    def clear(self) -> None:
        self._groups = {}

    @property
    def mutable_groups(self) -> dict[str, UserGroup]:
        """Expose the backing dict to the ordering helpers of this package."""
        return self._groups

    # operations ------------------------------------------------------
    def create_group(self, name: str, member_ids: Iterable[int]) -> UserGroup | None:
        """Group the loose requirements ``member_ids`` under ``name``.

        Members are stored in catalog order and the group takes the list
        position of the first member. Returns ``None`` without changing
        anything when the name is blank, the set is empty, or any member is
        not currently a loose entry of the list.
        """
        name = name.strip() if isinstance(name, str) else ""
        members = set(member_ids)
        if not name or not members:
            logger.debug("create_group ignored: empty name or selection")
            return None
        loose = set(self._order.loose_ids())
        if not members <= loose:
            logger.debug(
                "create_group ignored: not loose %s", sorted(members - loose)
            )
            return None

        group = UserGroup(
            id=self._id_factory(),
            name=name,
            requirement_ids=self._catalog.sort_ids(members),
        )
        first_index = min(
            index
            for index, entry in enumerate(self._order)
            if isinstance(entry, LooseEntry) and entry.requirement_id in members
        )
        remaining = [
            entry
            for entry in self._order
            if not (isinstance(entry, LooseEntry) and entry.requirement_id in members)
        ]
        remaining.insert(first_index, GroupEntry(group.id))
        self._order.replace(remaining)
        self._groups[group.id] = group
        return group

    def ungroup(self, group_id: str) -> UserGroup | None:
        """Dissolve ``group_id`` putting its members back at its position."""
        group = self._groups.get(group_id)
        if group is None:
            return None
        members = [LooseEntry(req_id) for req_id in group.requirement_ids]
        index = self._order.index(GroupEntry(group_id))
        if index is None:
            for entry in members:
                self._order.append(entry)
        else:
            self._order.splice(index, members)
        del self._groups[group_id]
        return group

    def rename(self, group_id: str, name: str) -> UserGroup | None:
        group = self._groups.get(group_id)
        name = name.strip() if isinstance(name, str) else ""
        if group is None or not name:
            return None
        group.name = name
        return group

    def toggle_collapse(self, group_id: str) -> UserGroup | None:
        group = self._groups.get(group_id)
        if group is None:
            return None
        group.collapsed = not group.collapsed
        return group
