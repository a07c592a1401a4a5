"""Composition root building shared dependencies for ExamTrack."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from .core.catalog import Catalog, load_catalog
from .remote import RemoteStore, build_remote_store
from .services.tracker import ExamTracker
from .settings import AppSettings, load_app_settings
from .sync import SyncLayer


class ApplicationContext:
    """Central dependency registry shared by the CLI and embedding frontends."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        catalog_loader: Callable[[str | None], Catalog] | None = None,
        remote_factory: Callable[[AppSettings], RemoteStore] | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._catalog_loader = catalog_loader or load_catalog
        self._remote_factory = remote_factory or (
            lambda settings: build_remote_store(settings.remote)
        )
        self._catalog: Catalog | None = None
        self._sync: SyncLayer | None = None
        self._tracker: ExamTracker | None = None

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def catalog(self) -> Catalog:
        """Return lazily loaded requirement :class:`Catalog`."""
        if self._catalog is None:
            self._catalog = self._catalog_loader(self._settings.catalog.path)
        return self._catalog

    @property
    def sync(self) -> SyncLayer:
        """Return shared :class:`SyncLayer` bound to the configured backend."""
        if self._sync is None:
            self._sync = SyncLayer(
                self._remote_factory(self._settings),
                max_workers=self._settings.sync.max_workers,
            )
        return self._sync

    @property
    def tracker(self) -> ExamTracker:
        """Return the shared tracker, loading remote state on first access."""
        if self._tracker is None:
            tracker = ExamTracker(self.catalog, self.sync)
            tracker.init()
            self._tracker = tracker
        return self._tracker

    def close(self) -> None:
        """Wait for pending remote writes and release the backend."""
        if self._sync is not None:
            self._sync.close(wait_pending=True)
            self._sync = None
        self._tracker = None

    @classmethod
    def from_settings_file(cls, path: str | Path | None) -> "ApplicationContext":
        """Return context configured from a JSON/TOML settings file."""
        if path is None:
            return cls()
        return cls(load_app_settings(path))
