"""Remote persistence backends."""

from __future__ import annotations

from ..settings import RemoteSettings
from .base import (
    FOLDERS,
    GROUPS,
    MEDIA,
    PROGRESS,
    SETTINGS,
    RemoteStore,
    RemoteStoreError,
)
from .file_store import FileRemoteStore
from .rest_store import RestRemoteStore


def build_remote_store(settings: RemoteSettings) -> RemoteStore:
    """Return the backend selected by ``settings.backend``."""
    if settings.backend == "rest":
        return RestRemoteStore(
            settings.base_url,
            user_id=settings.user_id,
            api_key=settings.api_key,
            access_token=settings.access_token,
            timeout=settings.timeout_seconds,
        )
    return FileRemoteStore(settings.data_dir, settings.user_id)


__all__ = [
    "FOLDERS",
    "GROUPS",
    "MEDIA",
    "PROGRESS",
    "SETTINGS",
    "FileRemoteStore",
    "RemoteStore",
    "RemoteStoreError",
    "RestRemoteStore",
    "build_remote_store",
]
