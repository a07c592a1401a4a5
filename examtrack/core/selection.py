"""Multi-selection state over the flattened requirement list."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from ..log import logger


class SelectionEngine:
    """Track selected requirements and the anchor used for range extension.

    The flattened list is supplied lazily through ``flatten`` so range
    selection always sees the current order, including members of collapsed
    groups.
    """

    def __init__(self, flatten: Callable[[], Sequence[int]]) -> None:
        self._flatten = flatten
        self._selected: list[int] = []
        self._last_selected: int | None = None
        self._active: int | None = None

    # access ----------------------------------------------------------
    @property
    def selected_ids(self) -> list[int]:
        """Return selected ids in the order they were selected."""
        return list(self._selected)

    @property
    def last_selected_id(self) -> int | None:
        return self._last_selected

    @property
    def active_requirement_id(self) -> int | None:
        return self._active

    def is_selected(self, req_id: int) -> bool:
        return req_id in self._selected

    # operations ------------------------------------------------------
    def select(self, req_id: int, *, multi: bool = False, range_select: bool = False) -> bool:
        """Apply one click on ``req_id`` and report whether it was handled.

        ``range_select`` unions the span between the anchor and ``req_id``
        into the selection and keeps the anchor. ``multi`` toggles
        membership. Without modifiers the selection is replaced.
        """
        flat = self._flatten()
        if isinstance(req_id, bool) or req_id not in flat:
            logger.debug("select ignored: unknown requirement %s", req_id)
            return False

        if range_select and self._last_selected is not None:
            if self._last_selected in flat:
                self._extend_range(flat, req_id)
            else:
                self._replace(req_id)
        elif multi:
            self._toggle(req_id)
        else:
            self._replace(req_id)
        self._active = req_id
        return True

    def clear(self) -> None:
        self._selected = []
        self._last_selected = None

    def set_active(self, req_id: int | None) -> None:
        self._active = req_id

    def restore(self, selected_ids: Iterable[int], active_id: int | None) -> None:
        """Load persisted selection; the anchor is not persisted."""
        self._selected = list(dict.fromkeys(selected_ids))
        self._last_selected = None
        self._active = active_id

    def prune(self, valid_ids: Iterable[int]) -> bool:
        """Drop ids that no longer exist and report whether anything changed."""
        valid = set(valid_ids)
        kept = [req_id for req_id in self._selected if req_id in valid]
        changed = kept != self._selected
        self._selected = kept
        if self._last_selected is not None and self._last_selected not in valid:
            self._last_selected = kept[-1] if kept else None
            changed = True
        if self._active is not None and self._active not in valid:
            self._active = None
            changed = True
        return changed

    # helpers ---------------------------------------------------------
    def _replace(self, req_id: int) -> None:
        self._selected = [req_id]
        self._last_selected = req_id

    def _toggle(self, req_id: int) -> None:
        if self.is_selected(req_id):
            self._selected.remove(req_id)
            # the anchor must stay a member of the selection
            self._last_selected = self._selected[-1] if self._selected else None
        else:
            self._selected.append(req_id)
            self._last_selected = req_id

    def _extend_range(self, flat: Sequence[int], req_id: int) -> None:
        start = flat.index(self._last_selected)
        end = flat.index(req_id)
        low, high = min(start, end), max(start, end)
        for candidate in flat[low : high + 1]:
            if candidate not in self._selected:
                self._selected.append(candidate)
