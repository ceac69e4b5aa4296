"""
Storage module for Shortlink (in-memory implementation).

Responsibilities:
    - Map codes to URL records
    - Enforce one code per origin (conflict) and one origin per code (collision)
    - Scope soft deletes to the record owner
    - Provide listing by owner

Design:
    - One dict `code -> URLRecord` plus a secondary index `origin -> code`,
      so create/get/mark_deleted are O(1); list_by_owner scans.
    - A single reader/writer lock guards both dicts. Reads share it,
      writes hold it exclusively.
    - `_journal()` is called while the write lock is held with every record
      that was inserted or flipped; the file backend overrides it.
    - Statistics are unsupported here: `stats()` returns (0, 0).
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ..exceptions import CodeCollisionError, ConflictError
from ..models import URLRecord
from .base import BaseStorage
from .rwlock import ReadWriteLock

log = logging.getLogger(__name__)


class MemoryStorage(BaseStorage):
    def __init__(self) -> None:
        """
        Initialize empty storage.

        Internal schema:
            self._records = {code: URLRecord}
            self._by_origin = {origin: code}
        """
        self._records: Dict[str, URLRecord] = {}
        self._by_origin: Dict[str, str] = {}
        self._lock = ReadWriteLock()

    # ---- Internal helpers (write lock held) ------------------------------

    def _insert(self, record: URLRecord) -> None:
        existing_code = self._by_origin.get(record.origin)
        if existing_code is not None:
            raise ConflictError(existing_code)

        existing = self._records.get(record.code)
        if existing is not None:
            # Same code, different origin: the origin index above already
            # handled the same-origin case.
            raise CodeCollisionError(record.code)

        self._records[record.code] = record
        self._by_origin[record.origin] = record.code

    def _journal(self, records: Sequence[URLRecord]) -> None:
        """Hook for durable backends; in-memory storage keeps nothing."""
        return None

    def _load(self, record: URLRecord) -> None:
        """Last-write-wins insert used by replay; bypasses conflict checks."""
        previous = self._records.get(record.code)
        if previous is not None and previous.origin != record.origin:
            self._by_origin.pop(previous.origin, None)
        self._records[record.code] = record
        self._by_origin[record.origin] = record.code

    # ---- Contract methods -------------------------------------------------

    def create(self, record: URLRecord) -> None:
        with self._lock.write_locked():
            self._insert(record)
            self._journal([record])

    def create_batch(self, records: Sequence[URLRecord]) -> Dict[str, str]:
        """
        Best-effort insert: each item stands alone.

        Conflicts resolve to the already-stored code; collisions are logged
        and the item is left out of the result. Nothing is rolled back.
        """
        stored: Dict[str, str] = {}
        inserted: List[URLRecord] = []
        with self._lock.write_locked():
            for record in records:
                try:
                    self._insert(record)
                except ConflictError as exc:
                    stored[record.origin] = exc.existing_code
                    continue
                except CodeCollisionError:
                    log.error("code collision in batch: code=%s origin=%s", record.code, record.origin)
                    continue
                inserted.append(record)
                stored[record.origin] = record.code
            if inserted:
                self._journal(inserted)
        return stored

    def get(self, code: str) -> Optional[URLRecord]:
        with self._lock.read_locked():
            return self._records.get(code)

    def list_by_owner(self, owner: str) -> List[URLRecord]:
        with self._lock.read_locked():
            found = [r for r in self._records.values() if r.owner == owner and not r.deleted]
        return sorted(found, key=lambda r: r.created_at)

    def mark_deleted(self, codes: Iterable[str], owner: str) -> int:
        flipped: List[URLRecord] = []
        with self._lock.write_locked():
            for code in codes:
                record = self._records.get(code)
                if record is None or record.owner != owner or record.deleted:
                    continue
                record = record.mark_deleted()
                self._records[code] = record
                flipped.append(record)
            if flipped:
                self._journal(flipped)
        return len(flipped)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._records)
