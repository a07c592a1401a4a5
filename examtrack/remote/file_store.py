"""JSON file storage standing in for the remote database."""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from ..log import logger
from ..util.time import utc_now_iso
from .base import SETTINGS, RemoteStoreError, key_column


def _read_json(path: Path) -> object:
    """Read JSON from *path* and raise :class:`RemoteStoreError` on invalid content."""
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except json.JSONDecodeError as exc:
        raise RemoteStoreError(f"Invalid JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise RemoteStoreError(f"Failed to read {path}: {exc}") from exc


def filename_for(table: str) -> str:
    """Return filename for ``table`` with ``.json`` extension."""
    return f"{table}.json"


class FileRemoteStore:
    """Keep one JSON document per table under ``directory/<user_id>``.

    Each document maps the string form of the row key to the row. Writes go
    through a temporary file and :func:`os.replace`, and a lock serialises
    them because the sync layer calls in from worker threads.
    """

    def __init__(self, directory: str | Path, user_id: str | None = "local") -> None:
        self._root = Path(directory)
        self._user_id = user_id
        self._lock = threading.Lock()

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def directory(self) -> Path:
        if self._user_id is None:
            raise RemoteStoreError("no active session")
        return self._root / self._user_id

    # helpers ---------------------------------------------------------
    def _load_table(self, table: str) -> dict[str, dict[str, Any]]:
        path = self.directory / filename_for(table)
        if not path.exists():
            return {}
        data = _read_json(path)
        if not isinstance(data, dict):
            raise RemoteStoreError(f"Unexpected content in {path}")
        return data

    def _save_table(self, table: str, data: Mapping[str, Any]) -> Path:
        directory = self.directory
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename_for(table)
        tmp = path.with_suffix(".json.tmp")
        try:
            with tmp.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp, path)
        except OSError as exc:
            raise RemoteStoreError(f"Failed to write {path}: {exc}") from exc
        return path

    # RemoteStore -----------------------------------------------------
    def fetch(self, table: str) -> list[dict[str, Any]]:
        key_column(table)
        with self._lock:
            return [dict(row) for row in self._load_table(table).values()]

    def fetch_settings(self) -> dict[str, Any] | None:
        with self._lock:
            data = self._load_table(SETTINGS)
        return dict(data) if data else None

    def upsert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> None:
        column = key_column(table)
        with self._lock:
            data = self._load_table(table)
            for row in rows:
                if column not in row:
                    raise RemoteStoreError(f"row without {column} for {table}")
                data[str(row[column])] = dict(row)
            self._save_table(table, data)
        logger.debug("Stored %d row(s) in %s", len(rows), table)

    def delete(self, table: str, key: int | str) -> None:
        key_column(table)
        with self._lock:
            data = self._load_table(table)
            if data.pop(str(key), None) is not None:
                self._save_table(table, data)

    def upsert_settings(self, payload: Mapping[str, Any]) -> None:
        with self._lock:
            data = self._load_table(SETTINGS)
            data.update(payload)
            data["updated_at"] = utc_now_iso()
            self._save_table(SETTINGS, data)

    def close(self) -> None:
        return None
