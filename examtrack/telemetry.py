"""Structured events describing the tracker's session and remote mirroring.

Every event is a record on the ``examtrack`` logger whose ``json`` extra
holds the event name, a sanitised payload and, for remote work, the table
and operation involved. Learner-written text (notes, chapter markers) is
never logged verbatim; only its length is kept.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from typing import Any

from .log import logger
from .util.json import make_json_safe

INIT = "INIT"
INIT_FAILED = "INIT_FAILED"
IMPORT = "IMPORT"
IMPORT_FAILED = "IMPORT_FAILED"
SYNC_FAILED = "SYNC_FAILED"
REMOTE_ERROR = "REMOTE_ERROR"

# credentials sent to the REST backend
SENSITIVE_KEYS = {
    "authorization",
    "apikey",
    "api_key",
    "access_token",
    "token",
    "password",
}

# free text typed by the learner
PRIVATE_TEXT_KEYS = {"notes", "chapters"}

REDACTED = "[REDACTED]"


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        clean: dict[str, Any] = {}
        for key, item in value.items():
            name = str(key).lower()
            if name in SENSITIVE_KEYS:
                clean[key] = REDACTED
            elif name in PRIVATE_TEXT_KEYS and isinstance(item, str):
                clean[key] = f"<{len(item)} chars>"
            else:
                clean[key] = _sanitize_value(item)
        return clean
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(item) for item in value]
    return value


def sanitize(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *data* safe to write to the logs."""
    return _sanitize_value(dict(data))


def log_event(
    event: str,
    payload: Mapping[str, Any] | None = None,
    *,
    table: str | None = None,
    operation: str | None = None,
    start_time: float | None = None,
    level: int = logging.INFO,
) -> None:
    """Emit *event* on the ``examtrack`` logger.

    ``table`` and ``operation`` are stored next to the event name rather
    than inside the payload so log consumers can filter remote failures by
    table without parsing payloads.
    """
    data: dict[str, Any] = {"event": event}
    if table is not None:
        data["table"] = table
    if operation is not None:
        data["operation"] = operation
    safe_payload = make_json_safe(sanitize(payload)) if payload else {}
    data["payload"] = safe_payload
    data["size_bytes"] = (
        len(json.dumps(safe_payload, ensure_ascii=False).encode("utf-8")) if payload else 0
    )
    if start_time is not None:
        data["duration_ms"] = int((time.monotonic() - start_time) * 1000)
    logger.log(level, event, extra={"json": data})


def log_sync_failure(
    operation: str, table: str, error: BaseException, *, start_time: float | None = None
) -> None:
    """Record a remote write that was dropped after failing."""
    log_event(
        SYNC_FAILED,
        {"error": str(error), "error_type": type(error).__name__},
        table=table,
        operation=operation,
        start_time=start_time,
        level=logging.WARNING,
    )
