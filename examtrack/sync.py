"""Best-effort mirroring of local mutations to the remote store.

Local state is the source of truth. Every write is handed to a thread pool
and forgotten: failures are logged and never rolled back or retried, and
writes to the same entity are not sequenced, so the last response to land
wins remotely.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from copy import deepcopy
from dataclasses import dataclass
from typing import Any

from .log import logger
from .remote.base import FOLDERS, GROUPS, MEDIA, PROGRESS, SETTINGS, RemoteStore
from .settings import DEFAULT_SYNC_WORKERS
from .telemetry import log_sync_failure


@dataclass(frozen=True)
class RemoteData:
    """Everything fetched for one user session."""

    progress: list[dict[str, Any]]
    folders: list[dict[str, Any]]
    media: list[dict[str, Any]]
    groups: list[dict[str, Any]]
    settings: dict[str, Any] | None


class SyncLayer:
    """Schedule remote writes on a :class:`ThreadPoolExecutor`."""

    def __init__(
        self,
        remote: RemoteStore,
        *,
        max_workers: int = DEFAULT_SYNC_WORKERS,
        executor: Executor | None = None,
    ) -> None:
        self._remote = remote
        if executor is None:
            executor = ThreadPoolExecutor(
                max_workers=max_workers,
                thread_name_prefix="ExamTrackSync",
            )
        self._executor = executor
        self._pending: set[Future[Any]] = set()
        self._lock = threading.Lock()
        self._failures = 0
        self._closed = False

    @property
    def remote(self) -> RemoteStore:
        return self._remote

    @property
    def has_session(self) -> bool:
        return self._remote.user_id is not None

    @property
    def failure_count(self) -> int:
        """Return how many remote writes failed since start-up."""
        with self._lock:
            return self._failures

    # reads -----------------------------------------------------------
    def fetch_all(self) -> RemoteData:
        """Fetch every table in parallel and wait for all of them.

        Errors from the remote store propagate to the caller.
        """
        remote = self._remote
        futures = {
            "progress": self._executor.submit(remote.fetch, PROGRESS),
            "folders": self._executor.submit(remote.fetch, FOLDERS),
            "media": self._executor.submit(remote.fetch, MEDIA),
            "groups": self._executor.submit(remote.fetch, GROUPS),
            "settings": self._executor.submit(remote.fetch_settings),
        }
        results = {name: future.result() for name, future in futures.items()}
        return RemoteData(**results)

    # writes ----------------------------------------------------------
    def upsert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> Future[Any] | None:
        if not rows:
            return None
        payload = deepcopy([dict(row) for row in rows])
        return self._submit("upsert", table, self._remote.upsert, table, payload)

    def delete(self, table: str, key: int | str) -> Future[Any] | None:
        return self._submit("delete", table, self._remote.delete, table, key)

    def upsert_settings(self, payload: Mapping[str, Any]) -> Future[Any] | None:
        data = deepcopy(dict(payload))
        return self._submit("upsert", SETTINGS, self._remote.upsert_settings, data)

    def _submit(
        self, operation: str, table: str, func: Callable[..., Any], *args: Any
    ) -> Future[Any] | None:
        if not self.has_session:
            logger.debug("No session; skipping remote %s on %s", operation, table)
            return None
        if self._closed:
            logger.warning("Sync layer closed; dropping remote %s on %s", operation, table)
            return None
        future = self._executor.submit(self._run, operation, table, func, args)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _run(
        self,
        operation: str,
        table: str,
        func: Callable[..., Any],
        args: tuple[Any, ...],
    ) -> bool:
        """Execute one remote write; failures are logged, never raised."""
        start = time.monotonic()
        try:
            func(*args)
        except Exception as exc:
            with self._lock:
                self._failures += 1
            logger.warning("Remote %s on %s failed: %s", operation, table, exc)
            log_sync_failure(operation, table, exc, start_time=start)
            return False
        return True

    def _forget(self, future: Future[Any]) -> None:
        with self._lock:
            self._pending.discard(future)

    # lifecycle -------------------------------------------------------
    def flush(self, timeout: float | None = None) -> bool:
        """Wait for writes in flight; return ``True`` when all finished."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _done, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self, *, wait_pending: bool = True) -> None:
        """Stop accepting writes, shut the pool down and release the store."""
        self._closed = True
        self._executor.shutdown(wait=wait_pending)
        self._remote.close()
