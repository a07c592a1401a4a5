"""HTTP client for a PostgREST-style remote database."""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from ..log import logger
from ..telemetry import REMOTE_ERROR, log_event
from ..util.time import utc_now_iso
from .base import PROGRESS, SETTINGS, RemoteStoreError, key_column

# Rows are unique per user, so the progress key is only unique together with
# the owner. The other tables use globally unique ids.
CONFLICT_TARGETS: dict[str, str] = {
    PROGRESS: "user_id,requirement_id",
    SETTINGS: "user_id",
}


def conflict_target(table: str) -> str:
    """Return the ``on_conflict`` columns used when upserting into ``table``."""
    if table in CONFLICT_TARGETS:
        return CONFLICT_TARGETS[table]
    return key_column(table)


class RestRemoteStore:
    """Talk to tables exposed as ``<base_url>/<table>`` REST resources.

    Rows are scoped with ``user_id=eq.<id>`` filters and upserts rely on
    ``Prefer: resolution=merge-duplicates`` on the columns given by
    :func:`conflict_target`.
    No timeout is imposed beyond httpx defaults unless one is configured.
    """

    def __init__(
        self,
        base_url: str,
        *,
        user_id: str | None,
        api_key: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required for the REST remote store")
        self._user_id = user_id
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
        token = access_token or api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        kwargs: dict[str, Any] = {"base_url": base_url, "headers": headers}
        if timeout is not None:
            kwargs["timeout"] = httpx.Timeout(timeout)
        if transport is not None:
            kwargs["transport"] = transport
        self._client = httpx.Client(**kwargs)

    @property
    def user_id(self) -> str | None:
        return self._user_id

    # helpers ---------------------------------------------------------
    def _require_user(self) -> str:
        if self._user_id is None:
            raise RemoteStoreError("no active session")
        return self._user_id

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        path = f"/{table}"
        start = time.monotonic()
        try:
            response = self._client.request(
                method, path, params=params, json=json_body, headers=headers
            )
        except httpx.HTTPError as exc:
            log_event(
                REMOTE_ERROR,
                {"error": str(exc)},
                table=table,
                operation=method,
                start_time=start,
            )
            raise RemoteStoreError(f"{method} {path} failed: {exc}") from exc
        logger.debug("%s %s -> %s", method, path, response.status_code)
        if response.status_code >= 400:
            log_event(
                REMOTE_ERROR,
                {"status": response.status_code},
                table=table,
                operation=method,
                start_time=start,
            )
            raise RemoteStoreError(
                f"{method} {path} returned {response.status_code}: {response.text}"
            )
        return response

    def _owner_filter(self) -> dict[str, str]:
        return {"user_id": f"eq.{self._require_user()}"}

    # RemoteStore -----------------------------------------------------
    def fetch(self, table: str) -> list[dict[str, Any]]:
        key_column(table)
        params = {"select": "*", **self._owner_filter()}
        data = self._request("GET", table, params=params).json()
        if not isinstance(data, list):
            raise RemoteStoreError(f"unexpected payload for {table}")
        return data

    def fetch_settings(self) -> dict[str, Any] | None:
        params = {"select": "*", **self._owner_filter()}
        data = self._request("GET", SETTINGS, params=params).json()
        if isinstance(data, list) and data:
            return dict(data[0])
        return None

    def upsert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> None:
        target = conflict_target(table)
        user_id = self._require_user()
        body = [{**row, "user_id": user_id} for row in rows]
        if not body:
            return
        self._request(
            "POST",
            table,
            params={"on_conflict": target},
            json_body=body,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    def delete(self, table: str, key: int | str) -> None:
        column = key_column(table)
        params = {column: f"eq.{key}", **self._owner_filter()}
        self._request("DELETE", table, params=params)

    def upsert_settings(self, payload: Mapping[str, Any]) -> None:
        body = {**payload, "user_id": self._require_user(), "updated_at": utc_now_iso()}
        self._request(
            "POST",
            SETTINGS,
            params={"on_conflict": conflict_target(SETTINGS)},
            json_body=body,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    def close(self) -> None:
        self._client.close()
