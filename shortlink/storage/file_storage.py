"""
FileStorage – in-memory storage with an append-only JSON-lines journal
=====================================================================

Keeps the whole dataset in the `MemoryStorage` map and lock, and appends
one JSON object per stored or soft-deleted record to a journal file:

    {"short_url": "...", "original_url": "...", "user_id": "...", "is_deleted": false}

Durability is fire-and-forget: the journal is opened in append mode for
each write (no handle is held between calls) and a failed append is logged,
not raised. A crash between the in-memory write and the flush may lose the
most recent lines.

On construction the journal is replayed top to bottom; a later line for the
same `short_url` overrides an earlier one. Malformed lines are skipped with
a warning. The journal is never compacted while running; `close()` rewrites
it as a snapshot of the current map (temp file + atomic rename) to bound
its growth.

Example
-------
>>> storage = FileStorage("/tmp/shortlink.jsonl")
>>> storage.create(URLRecord(code="abc123", origin="https://example.com"))
>>> FileStorage("/tmp/shortlink.jsonl").get("abc123").origin
'https://example.com'
"""

import json
import logging
import os
import tempfile
from typing import Sequence

from ..models import URLRecord
from .storage import MemoryStorage

log = logging.getLogger(__name__)


class FileStorage(MemoryStorage):
    """Journal-backed variant of the in-memory storage.

    Parameters
    ----------
    path : str
        Journal file. Created on first write; its directory is created if missing.
    """

    def __init__(self, path: str) -> None:
        if not path:
            raise ValueError("file path is required for the file storage backend")
        super().__init__()
        self.path = path
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        self._replay()

    # ---- Internal helpers -------------------------------------------------

    def _replay(self) -> None:
        if not os.path.exists(self.path):
            log.info("journal %s does not exist yet; starting empty", self.path)
            return

        lines = skipped = 0
        with self._lock.write_locked(), open(self.path, "r", encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = URLRecord.from_entry(json.loads(line))
                except (ValueError, KeyError, TypeError) as exc:
                    skipped += 1
                    log.warning("skipping malformed journal line %s:%d: %s", self.path, lineno, exc)
                    continue
                self._load(record)
                lines += 1
        log.info("replayed %d journal lines (%d skipped) into %d records from %s",
                 lines, skipped, len(self._records), self.path)

    def _journal(self, records: Sequence[URLRecord]) -> None:
        payload = "".join(json.dumps(r.to_entry()) + "\n" for r in records)
        try:
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(payload)
        except OSError:
            log.exception("failed to append %d records to journal %s", len(records), self.path)

    # ---- Snapshot ---------------------------------------------------------

    def snapshot(self) -> int:
        """Rewrite the journal with one line per record. Returns the line count."""
        with self._lock.write_locked():
            records = list(self._records.values())
            directory = os.path.dirname(os.path.abspath(self.path))
            fd, tmp_path = tempfile.mkstemp(prefix=".journal-", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    for record in records:
                        fh.write(json.dumps(record.to_entry()) + "\n")
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        log.info("snapshot wrote %d records to %s", len(records), self.path)
        return len(records)

    def close(self) -> None:
        try:
            self.snapshot()
        except OSError:
            log.exception("snapshot of %s failed; journal left as is", self.path)
