"""Persistence collaborator interface mirrored by the sync layer."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

PROGRESS = "user_progress"
FOLDERS = "user_folders"
MEDIA = "user_media"
GROUPS = "user_groups"
SETTINGS = "user_settings"

# primary key column per entity table
TABLE_KEYS: dict[str, str] = {
    PROGRESS: "requirement_id",
    FOLDERS: "id",
    MEDIA: "id",
    GROUPS: "id",
}


class RemoteStoreError(Exception):
    """Raised when the remote store rejects or fails a request."""


def key_column(table: str) -> str:
    """Return the key column of ``table`` raising :class:`RemoteStoreError`."""
    try:
        return TABLE_KEYS[table]
    except KeyError as exc:
        raise RemoteStoreError(f"unknown table: {table}") from exc


class RemoteStore(Protocol):
    """Per-user persistence keyed by stable entity identifiers.

    ``user_id`` is ``None`` when there is no active session; callers skip
    remote work in that case.
    """

    @property
    def user_id(self) -> str | None:
        """Return the id of the signed-in user or ``None``."""

    def fetch(self, table: str) -> list[dict[str, Any]]:
        """Return every row of ``table`` owned by the current user."""

    def fetch_settings(self) -> dict[str, Any] | None:
        """Return the settings blob of the current user, if stored."""

    def upsert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> None:
        """Insert or replace ``rows`` keyed by the table's key column."""

    def delete(self, table: str, key: int | str) -> None:
        """Delete the row identified by ``key``; missing rows are ignored."""

    def upsert_settings(self, payload: Mapping[str, Any]) -> None:
        """Merge ``payload`` into the settings blob of the current user."""

    def close(self) -> None:
        """Release held resources."""
