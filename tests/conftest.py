"""Pytest configuration for the ExamTrack test suite."""

from __future__ import annotations

import pytest

from examtrack import log as examtrack_log

from examtrack.core.catalog import Catalog, catalog_from_data
from examtrack.services.tracker import ExamTracker
from examtrack.sync import SyncLayer
from tests.remote_utils import InlineExecutor, RecordingStore, sequential_ids

SAMPLE_CATALOG = [
    {"id": 1, "order": 1, "name": "Rolamentos", "qtd": "TODOS", "category": "Geral"},
    {"id": 2, "order": 2, "name": "Defesa contra soco", "qtd": 1, "category": "Defesa Pessoal"},
    {"id": 3, "order": 3, "name": "Queda de quadril", "qtd": 2, "category": "Queda"},
    {"id": 4, "order": 4, "name": "Raspagem de gancho", "qtd": 2, "category": "Raspagem"},
    {"id": 5, "order": 5, "name": "Triângulo", "qtd": 1, "category": "Finalização"},
    {"id": 6, "order": 6, "name": "Saída da montada", "qtd": "-", "category": "Saída"},
]


@pytest.fixture(autouse=True)
def _isolated_logs(tmp_path_factory, monkeypatch):
    monkeypatch.setenv("EXAMTRACK_LOG_DIR", str(tmp_path_factory.mktemp("logs")))


@pytest.fixture(autouse=True)
def _isolated_logger():
    """Undo handlers installed on the ``examtrack`` logger by a test."""
    saved_handlers = list(examtrack_log.logger.handlers)
    saved_level = examtrack_log.logger.level
    saved_dir = examtrack_log._log_dir
    yield
    for handler in examtrack_log.logger.handlers:
        if handler not in saved_handlers:
            handler.close()
    examtrack_log.logger.handlers[:] = saved_handlers
    examtrack_log.logger.setLevel(saved_level)
    examtrack_log._log_dir = saved_dir


@pytest.fixture
def catalog() -> Catalog:
    return catalog_from_data(SAMPLE_CATALOG)


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def sync(store: RecordingStore) -> SyncLayer:
    layer = SyncLayer(store, executor=InlineExecutor())
    yield layer
    layer.close()


@pytest.fixture
def tracker(catalog: Catalog, sync: SyncLayer) -> ExamTracker:
    return ExamTracker(catalog, sync, id_factory=sequential_ids())
