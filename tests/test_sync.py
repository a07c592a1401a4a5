from __future__ import annotations

import logging
import threading

import pytest

from examtrack.remote import GROUPS, MEDIA, PROGRESS
from examtrack.sync import SyncLayer
from tests.remote_utils import RecordingStore


def test_writes_are_mirrored_in_background():
    store = RecordingStore()
    layer = SyncLayer(store, max_workers=2)
    rows = [{"requirement_id": 1, "status": "done", "notes": ""}]
    layer.upsert(PROGRESS, rows)
    rows[0]["status"] = "todo"
    layer.delete(MEDIA, "m1")
    layer.upsert_settings({"selected_ids": [1]})
    assert layer.flush(timeout=5)
    layer.close()
    assert store.rows(PROGRESS)["1"]["status"] == "done"
    assert ("delete", MEDIA, "m1") in store.calls
    assert store.settings == {"selected_ids": [1]}
    assert store.closed


def test_empty_upsert_is_skipped():
    store = RecordingStore()
    layer = SyncLayer(store)
    assert layer.upsert(GROUPS, []) is None
    layer.close()
    assert store.calls == []


def test_failures_are_logged_and_counted(caplog):
    store = RecordingStore()
    store.fail = True
    layer = SyncLayer(store, max_workers=1)
    with caplog.at_level(logging.WARNING, logger="examtrack"):
        future = layer.upsert(GROUPS, [{"id": "g1"}])
        assert layer.flush(timeout=5)
    assert future.result() is False
    assert layer.failure_count == 1
    failures = [r for r in caplog.records if getattr(r, "json", {}).get("event") == "SYNC_FAILED"]
    assert failures
    assert failures[0].json["table"] == GROUPS
    assert failures[0].json["operation"] == "upsert"
    layer.close()


def test_no_session_skips_writes():
    store = RecordingStore(user_id=None)
    layer = SyncLayer(store)
    assert not layer.has_session
    assert layer.upsert(PROGRESS, [{"requirement_id": 1}]) is None
    assert layer.delete(PROGRESS, 1) is None
    assert layer.upsert_settings({"selected_ids": []}) is None
    layer.close()
    assert store.calls == []


def test_fetch_all_collects_every_table():
    store = RecordingStore()
    store.tables[PROGRESS] = {"1": {"requirement_id": 1, "status": "done", "notes": ""}}
    store.settings = {"list_order": [1]}
    layer = SyncLayer(store)
    data = layer.fetch_all()
    layer.close()
    assert data.progress == [{"requirement_id": 1, "status": "done", "notes": ""}]
    assert data.groups == []
    assert data.settings == {"list_order": [1]}


def test_fetch_all_propagates_errors():
    store = RecordingStore()
    store.fail = True
    layer = SyncLayer(store)
    with pytest.raises(Exception, match="remote unavailable"):
        layer.fetch_all()
    layer.close()


def test_flush_times_out_on_stuck_writes():
    release = threading.Event()

    class SlowStore(RecordingStore):
        def delete(self, table, key):
            release.wait(5)
            super().delete(table, key)

    store = SlowStore()
    layer = SyncLayer(store, max_workers=1)
    layer.delete(GROUPS, "g1")
    assert layer.flush(timeout=0.05) is False
    release.set()
    assert layer.flush(timeout=5) is True
    layer.close()


def test_writes_after_close_are_dropped_with_a_warning(caplog):
    store = RecordingStore()
    layer = SyncLayer(store, max_workers=1)
    layer.close()
    with caplog.at_level(logging.WARNING, logger="examtrack"):
        assert layer.upsert(PROGRESS, [{"requirement_id": 1}]) is None
        assert layer.delete(MEDIA, "m1") is None
        assert layer.upsert_settings({"selected_ids": []}) is None
    assert store.calls == []
    assert layer.failure_count == 0
    assert any("closed" in r.getMessage() for r in caplog.records)
