"""Logging setup for ExamTrack.

Three sinks hang off the ``examtrack`` logger: the console (warnings by
default, for the CLI), a rotating text log and a rotating JSON-lines log
that keeps the structured event fields emitted by
:mod:`examtrack.telemetry`.
"""

from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
import os
from pathlib import Path
from typing import Any

from .util.time import utc_now_iso

LOG_DIR_ENV = "EXAMTRACK_LOG_DIR"
TEXT_LOG_NAME = "examtrack.log"
JSON_LOG_NAME = "examtrack.jsonl"
_ROTATION_BACKUPS = 5
_MAX_BYTES = 5 * 1024 * 1024

logger = logging.getLogger("examtrack")

_log_dir: Path | None = None


def _event_fields(record: logging.LogRecord) -> dict[str, Any] | None:
    """Return the structured fields of a telemetry record, if any."""
    data = getattr(record, "json", None)
    if not isinstance(data, dict) or not isinstance(data.get("event"), str):
        return None
    return data


class ConsoleFormatter(logging.Formatter):
    """Render records as ``LEVEL: message`` with event context appended.

    Remote events are prefixed with ``table/operation`` so a failed sync is
    recognisable at a glance.
    """

    def __init__(self) -> None:
        super().__init__("%(levelname)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        fields = _event_fields(record)
        if fields is None:
            return base
        scope = "/".join(str(fields[key]) for key in ("table", "operation") if key in fields)
        if scope:
            base = f"{base} [{scope}]"
        payload = fields.get("payload")
        if not payload:
            return base
        return f"{base} {json.dumps(payload, ensure_ascii=False, default=str)}"


class JsonFormatter(logging.Formatter):
    """Serialise records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        fields = _event_fields(record)
        if fields is not None:
            data = dict(fields)
        else:
            data = {"message": message, "logger": record.name}
        data.setdefault("level", record.levelname)
        data.setdefault("timestamp", utc_now_iso())
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False, default=str)


def _rotating_handler(path: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    """Open *path* for appending, rolling over a file already at the limit."""
    existing = path.stat().st_size if path.exists() else 0
    handler = RotatingFileHandler(
        path,
        encoding="utf-8",
        maxBytes=_MAX_BYTES,
        backupCount=_ROTATION_BACKUPS,
    )
    if existing >= _MAX_BYTES:
        handler.doRollover()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def _resolve_log_dir(log_dir: str | Path | None) -> Path:
    if log_dir is not None:
        path = Path(log_dir).expanduser()
    elif os.environ.get(LOG_DIR_ENV):
        path = Path(os.environ[LOG_DIR_ENV]).expanduser()
    else:
        path = Path.home() / ".examtrack" / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path.resolve()


def configure_logging(
    level: int = logging.INFO,
    *,
    log_dir: str | Path | None = None,
) -> Path:
    """Attach the console and file handlers to the ``examtrack`` logger.

    Only the first call installs handlers; later calls keep them and return
    the directory already in use. ``level`` applies to the console only,
    the files always receive debug records.
    """
    global _log_dir

    if _log_dir is not None and logger.handlers:
        return _log_dir

    directory = _resolve_log_dir(log_dir)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(ConsoleFormatter())
    logger.addHandler(console)
    logger.addHandler(
        _rotating_handler(
            directory / TEXT_LOG_NAME,
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"),
        )
    )
    logger.addHandler(_rotating_handler(directory / JSON_LOG_NAME, JsonFormatter()))
    logger.setLevel(logging.DEBUG)
    _log_dir = directory
    return directory


__all__ = [
    "JSON_LOG_NAME",
    "LOG_DIR_ENV",
    "TEXT_LOG_NAME",
    "configure_logging",
    "logger",
]
