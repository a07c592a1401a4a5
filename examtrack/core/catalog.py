"""Static catalog of exam requirements."""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from importlib import resources
from pathlib import Path

from .model import Requirement, requirement_from_dict
from .schema import CATALOG_SCHEMA, validate

CATALOG_RESOURCE = "catalog.json"


class Catalog:
    """Immutable, ordered collection of :class:`Requirement` objects."""

    def __init__(self, requirements: Iterable[Requirement]) -> None:
        ordered = sorted(requirements, key=lambda req: (req.order, req.id))
        by_id: dict[int, Requirement] = {}
        for req in ordered:
            if req.id in by_id:
                raise ValueError(f"duplicate requirement id: {req.id}")
            by_id[req.id] = req
        self._requirements: tuple[Requirement, ...] = tuple(ordered)
        self._by_id = by_id
        self._rank = {req.id: index for index, req in enumerate(ordered)}

    def __len__(self) -> int:
        return len(self._requirements)

    def __iter__(self):
        return iter(self._requirements)

    def __contains__(self, req_id: object) -> bool:
        return req_id in self._by_id

    @property
    def requirements(self) -> tuple[Requirement, ...]:
        return self._requirements

    def ids(self) -> list[int]:
        """Return requirement ids in catalog order."""
        return [req.id for req in self._requirements]

    def get(self, req_id: int) -> Requirement | None:
        return self._by_id.get(req_id)

    def rank(self, req_id: int) -> int:
        """Return the catalog position of ``req_id`` (unknown ids sort last)."""
        return self._rank.get(req_id, len(self._requirements))

    def sort_ids(self, ids: Iterable[int]) -> list[int]:
        """Return ``ids`` ordered by catalog position."""
        return sorted(ids, key=self.rank)


def catalog_from_data(data: Sequence[dict]) -> Catalog:
    """Validate raw catalog ``data`` and build a :class:`Catalog`."""
    validate(data, CATALOG_SCHEMA)
    return Catalog(requirement_from_dict(item) for item in data)


def load_catalog(path: str | Path | None = None) -> Catalog:
    """Load the catalog from *path* or from the packaged resource.

    Raises :class:`ValueError` when the file is not valid JSON or does not
    match :data:`~examtrack.core.schema.CATALOG_SCHEMA`.
    """
    if path is not None:
        text = Path(path).read_text(encoding="utf-8")
        source = str(path)
    else:
        text = _load_packaged_text()
        source = CATALOG_RESOURCE
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {source}: {exc}") from exc
    return catalog_from_data(data)


def _load_packaged_text() -> str:
    try:
        return (
            resources.files("examtrack.resources")
            .joinpath(CATALOG_RESOURCE)
            .read_text(encoding="utf-8")
        )
    except (FileNotFoundError, ModuleNotFoundError, OSError):
        pass
    fallback = Path(__file__).resolve().parent.parent / "resources" / CATALOG_RESOURCE
    return fallback.read_text(encoding="utf-8")
