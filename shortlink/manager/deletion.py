"""Detached soft-delete worker.

Deletion requests are accepted immediately and executed later on a
dedicated worker thread, independent of the request that triggered them:
a client disconnecting cannot abort a half-applied deletion.

Each request is split into chunks of `batch_size` codes, and the chunks are
passed to `BaseStorage.mark_deleted` one after another. A chunk that fails
is logged and skipped. A request that runs longer than `timeout` seconds
stops before its next chunk and reports `timed_out`. Requests are processed
one at a time, in submission order.

Usage:
    queue = DeletionQueue(storage, batch_size=100, timeout=30.0)
    future = queue.submit("owner-1", ["abc123", "def456"])
    queue.barrier()          # wait until everything queued so far is done
    report = future.result()
    queue.close()
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from ..storage.base import BaseStorage

__all__ = ["DeletionQueue", "DeletionReport", "QueueClosed"]

log = logging.getLogger(__name__)

_Job = Tuple[Future, str, List[str]]


class QueueClosed(RuntimeError):
    """Raised when a deletion is submitted after the queue is closed."""


@dataclass(frozen=True)
class DeletionReport:
    owner: str
    requested: int
    deleted: int
    chunks: int
    failed_chunks: int
    timed_out: bool


class DeletionQueue:
    """Single worker thread applying soft deletes in fixed-size chunks."""

    def __init__(
        self,
        storage: BaseStorage,
        *,
        batch_size: int = 100,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.storage = storage
        self.batch_size = batch_size
        self.timeout = timeout
        self._clock = clock
        self._queue: "queue.Queue[Optional[_Job]]" = queue.Queue()
        self._closed = False
        self._close_lock = threading.Lock()
        self._thread = threading.Thread(target=self._worker, name="DeletionQueue", daemon=True)
        self._thread.start()

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def submit(self, owner: str, codes: Sequence[str]) -> Future:
        """Queue a soft delete and return a future for its `DeletionReport`."""
        with self._close_lock:
            if self._closed:
                raise QueueClosed("deletion queue is closed")
            future: Future = Future()
            self._queue.put((future, owner, list(codes)))
        return future

    def barrier(self, timeout: Optional[float] = None) -> None:
        """Block until every request submitted before this call has finished."""
        self.submit("", []).result(timeout=timeout)

    def close(self, timeout: float = 5.0) -> None:
        """Finish queued requests, then stop the worker thread."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(None)
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            log.warning("deletion worker still running after %.1fs; abandoning it", timeout)

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------ #
    # Internal worker                                                    #
    # ------------------------------------------------------------------ #
    def _worker(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is None:
                    return
                future, owner, codes = job
                if not future.set_running_or_notify_cancel():
                    continue
                future.set_result(self._run(owner, codes))
            finally:
                self._queue.task_done()

    def _run(self, owner: str, codes: List[str]) -> DeletionReport:
        deadline = self._clock() + self.timeout
        deleted = chunks = failed = 0
        timed_out = False

        for start in range(0, len(codes), self.batch_size):
            if self._clock() > deadline:
                timed_out = True
                log.warning(
                    "deletion for owner=%s exceeded %.1fs; dropping %d of %d codes",
                    owner, self.timeout, len(codes) - start, len(codes),
                )
                break
            chunk = codes[start:start + self.batch_size]
            chunks += 1
            try:
                deleted += self.storage.mark_deleted(chunk, owner)
            except Exception:
                failed += 1
                log.exception("failed to mark %d codes deleted for owner=%s", len(chunk), owner)

        return DeletionReport(
            owner=owner,
            requested=len(codes),
            deleted=deleted,
            chunks=chunks,
            failed_chunks=failed,
            timed_out=timed_out,
        )
