from __future__ import annotations

from examtrack.application import ApplicationContext
from examtrack.core.model import LearningStatus
from examtrack.remote import PROGRESS
from examtrack.settings import AppSettings
from tests.remote_utils import RecordingStore


def test_context_builds_tracker_lazily(catalog):
    store = RecordingStore()
    store.tables[PROGRESS] = {"1": {"requirement_id": 1, "status": "done", "notes": ""}}
    context = ApplicationContext(
        AppSettings(),
        catalog_loader=lambda path: catalog,
        remote_factory=lambda settings: store,
    )
    tracker = context.tracker
    assert context.tracker is tracker
    assert tracker.catalog is catalog
    assert tracker.get_state(1).status is LearningStatus.DONE
    tracker.update_notes(2, "n")
    context.close()
    assert store.closed
    assert store.rows(PROGRESS)["2"]["notes"] == "n"


def test_from_settings_file_without_path_uses_defaults():
    context = ApplicationContext.from_settings_file(None)
    assert context.settings.remote.backend == "file"
    assert len(context.catalog) == 30
