"""
Base storage interface for Shortlink.

Purpose:
    Define a small, stable contract that the three storage backends
    (in-memory, file-journaled, PostgreSQL) implement, so the shortener
    service never branches on which one is active.

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.

Documented asymmetry:
    `create_batch` is all-or-nothing on PostgreSQL (one transaction) and
    best-effort per item on the memory/file backends, which have no
    rollback primitive. Callers must not assume either behaviour.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models import URLRecord


class BaseStorage(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod  # pragma: no cover
    def create(self, record: URLRecord) -> None:
        """
        Persist a new record.

        Raises:
            ConflictError: the origin is already stored (carries its code).
            CodeCollisionError: the code is taken by a different origin.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def create_batch(self, records: Sequence[URLRecord]) -> Dict[str, str]:
        """
        Persist many records at once.

        Returns:
            Dict[str, str]: origin -> code for every record that is stored
            after the call, whether freshly inserted or already present.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get(self, code: str) -> Optional[URLRecord]:
        """
        Retrieve a record by code.

        Soft-deleted records are returned with `deleted=True`; a live hit is
        `record is not None and not record.deleted`.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def list_by_owner(self, owner: str) -> List[URLRecord]:
        """Return the owner's live records, oldest first."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def mark_deleted(self, codes: Iterable[str], owner: str) -> int:
        """
        Soft-delete the codes that belong to `owner`.

        Codes owned by someone else, or unknown, are skipped silently.

        Returns:
            int: number of records flipped to deleted.
        """
        raise NotImplementedError

    def ping(self) -> None:
        """Liveness check. Backends without a connection always succeed."""
        return None

    def stats(self) -> Tuple[int, int]:
        """(live record count, distinct owner count); (0, 0) when unsupported."""
        return 0, 0

    def close(self) -> None:
        """Release resources. Safe to call more than once."""
        return None
