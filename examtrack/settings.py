"""Typed application settings with Pydantic validation."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

import tomllib
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_SYNC_WORKERS = 4
MAX_SYNC_WORKERS = 32


def default_data_dir() -> str:
    """Return the directory used by the file-backed remote store."""
    return str(Path.home() / ".examtrack" / "data")


def _blank_to_none(value: str | Path | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class RemoteSettings(BaseModel):
    """Settings for the persistence collaborator mirrored by the sync layer."""

    model_config = ConfigDict(validate_assignment=True)

    backend: Literal["file", "rest"] = "file"
    data_dir: str = Field(default_factory=default_data_dir)
    base_url: str = ""
    api_key: str | None = None
    access_token: str | None = None
    user_id: str | None = "local"
    timeout_seconds: float | None = Field(default=None, gt=0)

    @field_validator("user_id", "api_key", "access_token", mode="before")
    @classmethod
    def _normalize_optional_text(cls, value: str | None) -> str | None:
        """Treat empty strings as unset."""
        return _blank_to_none(value)

    @field_validator("base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, value: str | None) -> str:
        """Strip whitespace and trailing slashes from ``value``."""
        if value is None:
            return ""
        return str(value).strip().rstrip("/")


class SyncSettings(BaseModel):
    """Settings controlling the background sync pool."""

    model_config = ConfigDict(validate_assignment=True)

    max_workers: int = DEFAULT_SYNC_WORKERS

    @field_validator("max_workers", mode="before")
    @classmethod
    def _normalize_max_workers(cls, value: int | str | None) -> int:
        """Clamp the worker count to the supported range."""
        if value is None:
            return DEFAULT_SYNC_WORKERS
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return DEFAULT_SYNC_WORKERS
            try:
                numeric = int(raw)
            except ValueError:  # pragma: no cover - delegated to Pydantic
                return value
        else:
            if isinstance(value, bool):
                raise TypeError("Boolean is not a valid max_workers value")
            numeric = int(value)
        if numeric <= 0:
            return DEFAULT_SYNC_WORKERS
        return min(numeric, MAX_SYNC_WORKERS)


class CatalogSettings(BaseModel):
    """Location of the requirement catalog."""

    model_config = ConfigDict(validate_assignment=True)

    path: str | None = None

    @field_validator("path", mode="before")
    @classmethod
    def _normalize_path(cls, value: str | Path | None) -> str | None:
        return _blank_to_none(value)


class AppSettings(BaseModel):
    """Aggregate settings for the application."""

    model_config = ConfigDict(validate_assignment=True)

    remote: RemoteSettings = Field(default_factory=RemoteSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    log_dir: str | None = None

    @field_validator("log_dir", mode="before")
    @classmethod
    def _normalize_log_dir(cls, value: str | Path | None) -> str | None:
        return _blank_to_none(value)

    def to_dict(self) -> dict:
        """Return settings as a plain dictionary."""
        return self.model_dump()


def load_app_settings(path: str | Path) -> AppSettings:
    """Load :class:`AppSettings` from *path* with validation.

    Format is detected by file extension: ``.toml`` uses :mod:`tomllib`,
    everything else is treated as JSON.  Any validation errors are wrapped into
    :class:`ValueError` with a human-friendly message.
    """
    p = Path(path)
    with p.open("rb") as fh:
        data = tomllib.load(fh) if p.suffix.lower() == ".toml" else json.load(fh)
    try:
        return AppSettings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(str(exc)) from exc
