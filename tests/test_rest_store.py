from __future__ import annotations

import json
import logging

import httpx
import pytest

from examtrack.remote import GROUPS, PROGRESS, RemoteStoreError, RestRemoteStore

pytestmark = pytest.mark.remote


class Recorder:
    def __init__(self, responses=None):
        self.requests: list[httpx.Request] = []
        self.responses = responses or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.responses.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(204)
        return handler(request)


def make_store(recorder, **kwargs):
    kwargs.setdefault("user_id", "u1")
    return RestRemoteStore(
        "https://db.example/rest/v1",
        transport=httpx.MockTransport(recorder),
        **kwargs,
    )


def test_fetch_filters_by_user_and_sends_credentials():
    recorder = Recorder(
        {("GET", "/rest/v1/user_progress"): lambda r: httpx.Response(200, json=[{"requirement_id": 1}])}
    )
    store = make_store(recorder, api_key="anon", access_token="jwt")
    assert store.fetch(PROGRESS) == [{"requirement_id": 1}]
    request = recorder.requests[0]
    assert request.url.params["user_id"] == "eq.u1"
    assert request.headers["apikey"] == "anon"
    assert request.headers["Authorization"] == "Bearer jwt"


def test_upsert_uses_merge_duplicates_on_key_column():
    recorder = Recorder()
    store = make_store(recorder)
    store.upsert(GROUPS, [{"id": "g1", "name": "Guard"}])
    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.params["on_conflict"] == "id"
    assert "merge-duplicates" in request.headers["Prefer"]
    assert json.loads(request.content) == [{"id": "g1", "name": "Guard", "user_id": "u1"}]


def test_progress_upsert_conflicts_on_user_and_requirement():
    recorder = Recorder()
    store = make_store(recorder)
    store.upsert(PROGRESS, [{"requirement_id": 3, "status": "done", "notes": ""}])
    request = recorder.requests[0]
    assert request.url.path == "/rest/v1/user_progress"
    assert request.url.params["on_conflict"] == "user_id,requirement_id"
    assert json.loads(request.content)[0]["user_id"] == "u1"


def test_delete_targets_single_row():
    recorder = Recorder()
    store = make_store(recorder)
    store.delete(PROGRESS, 4)
    params = recorder.requests[0].url.params
    assert params["requirement_id"] == "eq.4"
    assert params["user_id"] == "eq.u1"


def test_fetch_settings_returns_first_row_or_none():
    rows = [[{"user_id": "u1", "list_order": [1]}], []]
    recorder = Recorder(
        {("GET", "/rest/v1/user_settings"): lambda r: httpx.Response(200, json=rows.pop(0))}
    )
    store = make_store(recorder)
    assert store.fetch_settings()["list_order"] == [1]
    assert store.fetch_settings() is None


def test_http_errors_raise_remote_store_error(caplog):
    recorder = Recorder(
        {("POST", "/rest/v1/user_settings"): lambda r: httpx.Response(401, text="denied")}
    )
    store = make_store(recorder)
    with caplog.at_level(logging.INFO, logger="examtrack"):
        with pytest.raises(RemoteStoreError, match="401"):
            store.upsert_settings({"selected_ids": []})
    record = caplog.records[-1]
    assert record.json["event"] == "REMOTE_ERROR"
    assert record.json["table"] == "user_settings"
    assert record.json["operation"] == "POST"
    assert record.json["payload"] == {"status": 401}


def test_transport_errors_raise_remote_store_error():
    def boom(request):
        raise httpx.ConnectError("offline", request=request)

    store = RestRemoteStore(
        "https://db.example", user_id="u1", transport=httpx.MockTransport(boom)
    )
    with pytest.raises(RemoteStoreError, match="offline"):
        store.fetch(GROUPS)


def test_requires_session_and_base_url():
    with pytest.raises(ValueError):
        RestRemoteStore("", user_id="u1")
    store = make_store(Recorder(), user_id=None)
    with pytest.raises(RemoteStoreError):
        store.fetch(GROUPS)
