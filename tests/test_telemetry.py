from __future__ import annotations

import json
import logging
import time

import pytest

from examtrack.log import (
    JSON_LOG_NAME,
    TEXT_LOG_NAME,
    ConsoleFormatter,
    JsonFormatter,
    configure_logging,
    logger,
)
from examtrack.telemetry import (
    REDACTED,
    SYNC_FAILED,
    log_event,
    log_sync_failure,
    sanitize,
)

pytestmark = pytest.mark.core


def make_record(level, msg, fields):
    record = logging.LogRecord("examtrack", level, __file__, 1, msg, None, None)
    record.json = fields
    return record


def test_sanitize_redacts_nested_sensitive_keys():
    data = {
        "api_key": "secret",
        "headers": {"Authorization": "Bearer x", "Accept": "json"},
        "items": [{"token": "t"}],
    }
    clean = sanitize(data)
    assert clean["api_key"] == REDACTED
    assert clean["headers"] == {"Authorization": REDACTED, "Accept": "json"}
    assert clean["items"] == [{"token": REDACTED}]
    assert data["api_key"] == "secret"


def test_sanitize_keeps_only_length_of_learner_text():
    clean = sanitize({"rows": ({"requirement_id": 1, "notes": "abc", "chapters": "0:10 guard"},)})
    assert clean["rows"] == [{"requirement_id": 1, "notes": "<3 chars>", "chapters": "<10 chars>"}]


def test_log_event_attaches_structured_payload(caplog):
    with caplog.at_level(logging.INFO, logger="examtrack"):
        log_event("IMPORT", {"groups": 2, "password": "p"}, start_time=time.monotonic())
    record = caplog.records[-1]
    assert record.msg == "IMPORT"
    assert record.json["payload"] == {"groups": 2, "password": REDACTED}
    assert record.json["size_bytes"] > 0
    assert record.json["duration_ms"] >= 0
    assert "table" not in record.json


def test_log_event_keeps_table_and_operation_beside_payload(caplog):
    with caplog.at_level(logging.INFO, logger="examtrack"):
        log_event("REMOTE_ERROR", {"status": 500}, table="user_media", operation="delete")
    record = caplog.records[-1]
    assert record.json["table"] == "user_media"
    assert record.json["operation"] == "delete"
    assert record.json["payload"] == {"status": 500}


def test_sync_failure_is_a_warning_naming_the_error(caplog):
    with caplog.at_level(logging.WARNING, logger="examtrack"):
        log_sync_failure("upsert", "user_groups", TimeoutError("slow"))
    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.json["event"] == SYNC_FAILED
    assert record.json["payload"] == {"error": "slow", "error_type": "TimeoutError"}


def test_formatters_render_event_payload():
    record = make_record(logging.INFO, "INIT", {"event": "INIT", "payload": {"groups": 1}})
    assert ConsoleFormatter().format(record) == 'INFO: INIT {"groups": 1}'
    data = json.loads(JsonFormatter().format(record))
    assert data["event"] == "INIT"
    assert data["level"] == "INFO"
    assert "timestamp" in data


def test_console_formatter_prefixes_table_and_operation():
    record = make_record(
        logging.WARNING,
        "SYNC_FAILED",
        {
            "event": "SYNC_FAILED",
            "table": "user_groups",
            "operation": "upsert",
            "payload": {"error": "offline"},
        },
    )
    assert (
        ConsoleFormatter().format(record)
        == 'WARNING: SYNC_FAILED [user_groups/upsert] {"error": "offline"}'
    )


def test_plain_records_are_logged_as_messages():
    record = make_record(logging.DEBUG, "GET /user_progress -> 200", None)
    assert ConsoleFormatter().format(record) == "DEBUG: GET /user_progress -> 200"
    data = json.loads(JsonFormatter().format(record))
    assert data["message"] == "GET /user_progress -> 200"
    assert data["logger"] == "examtrack"


def test_configure_logging_writes_jsonl(tmp_path):
    directory = configure_logging(log_dir=tmp_path)
    assert configure_logging(log_dir=tmp_path / "other") == directory
    log_sync_failure("delete", "user_folders", RuntimeError("gone"))
    for handler in logger.handlers:
        handler.flush()
    lines = (directory / JSON_LOG_NAME).read_text(encoding="utf-8").splitlines()
    events = [json.loads(line) for line in lines]
    failure = next(item for item in events if item.get("event") == SYNC_FAILED)
    assert failure["table"] == "user_folders"
    assert failure["level"] == "WARNING"
    assert (directory / TEXT_LOG_NAME).exists()
