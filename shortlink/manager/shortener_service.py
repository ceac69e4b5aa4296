"""
ShortenerService module for Shortlink.

Responsibilities:
    - Validate origins (absolute URL: scheme and host)
    - Derive deterministic codes and persist them through the storage backend
    - Turn duplicate-origin conflicts into the existing code (idempotent shorten)
    - Resolve codes, distinguishing unknown from soft-deleted
    - Batch shorten with per-item validation
    - Hand soft deletes to the detached DeletionQueue
    - Expose liveness and the two aggregate counters

Design notes:
    - The storage backend is injected once and never switched; every call goes
      through the same `BaseStorage` interface.
    - The service holds no lock of its own. Serialization lives in the backend.
    - Conflict is recovered here and never escapes `shorten()`. CodeCollision
      is logged and raised.
"""

import logging
from concurrent.futures import Future
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from ..exceptions import CodeCollisionError, ConflictError, GoneError, InvalidURLError, NotFoundError
from ..models import BatchItem, BatchResult, URLRecord
from ..storage.base import BaseStorage
from .deletion import DeletionQueue
from .strategies import BaseStrategy, SHA256Strategy

log = logging.getLogger(__name__)


class ShortenerService:
    """
    Coordinates code generation, identity-scoped storage and soft deletion.
    """

    def __init__(
        self,
        storage: BaseStorage,
        deleter: Optional[DeletionQueue] = None,
        code_strategy: Optional[BaseStrategy] = None,
        delete_batch_size: int = 100,
        delete_timeout: float = 30.0,
    ):
        """
        Initialize ShortenerService with a storage backend.

        Args:
            storage (BaseStorage): Backend chosen at startup.
            deleter (Optional[DeletionQueue]): Soft-delete worker; one is created
                over `storage` when omitted.
            code_strategy (Optional[BaseStrategy]): Code generator (SHA-256 by default).
            delete_batch_size (int): Codes per mark_deleted call for the default deleter.
            delete_timeout (float): Seconds one deletion request may run for the default deleter.
        """
        self.storage = storage
        self.code_strategy = code_strategy or SHA256Strategy()
        self.deleter = deleter or DeletionQueue(storage, batch_size=delete_batch_size, timeout=delete_timeout)

    # ---------------------------------------------------------------------
    # Validation helpers
    # ---------------------------------------------------------------------
    @staticmethod
    def _validate_url(url: str) -> str:
        """
        Return the trimmed URL if it is absolute (non-empty scheme and host).

        Raises:
            InvalidURLError: If the URL is empty or malformed.
        """
        candidate = (url or "").strip()
        if not candidate:
            raise InvalidURLError(url)
        try:
            parsed = urlparse(candidate)
            host = parsed.hostname
        except ValueError as exc:
            raise InvalidURLError(url) from exc
        if not parsed.scheme or not parsed.netloc or not host:
            raise InvalidURLError(url)
        return candidate

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def create_or_get(self, owner: str, url: str) -> Tuple[str, bool]:
        """
        Shorten `url` for `owner` and report whether a record was created.

        Rules:
            - Validate the URL first; nothing is stored for invalid input.
            - The code is a pure function of the URL.
            - If the URL is already stored (by anyone), return its code with
              created=False. The existing record keeps its original owner.

        Returns:
            Tuple[str, bool]: (code, created)

        Raises:
            InvalidURLError: malformed URL.
            CodeCollisionError: the code belongs to a different URL.
            BackendUnavailableError: relational backend unreachable.
        """
        origin = self._validate_url(url)
        code = self.code_strategy.generate(origin)
        record = URLRecord(code=code, origin=origin, owner=owner or "")
        try:
            self.storage.create(record)
        except ConflictError as exc:
            return exc.existing_code, False
        except CodeCollisionError:
            log.error("code collision: code=%s origin=%s", code, origin)
            raise
        return code, True

    def shorten(self, owner: str, url: str) -> str:
        """Shorten `url`; idempotent per URL, not per call."""
        code, _ = self.create_or_get(owner, url)
        return code

    def resolve(self, code: str) -> Optional[URLRecord]:
        """
        Look a code up.

        Returns None for unknown codes. Soft-deleted records come back with
        `deleted=True`; the caller turns that into "gone".
        """
        return self.storage.get(code)

    def resolve_or_raise(self, code: str) -> URLRecord:
        """Like `resolve`, but raise NotFoundError / GoneError."""
        record = self.resolve(code)
        if record is None:
            raise NotFoundError(code)
        if record.deleted:
            raise GoneError(code)
        return record

    def batch_shorten(self, owner: str, items: Iterable[BatchItem]) -> List[BatchResult]:
        """
        Shorten many URLs in one backend call.

        Items with an empty correlation id, an empty URL, or a URL that fails
        validation are skipped; the rest of the batch proceeds. Results keep
        input order, one per processed item.

        Raises:
            CodeCollisionError: relational backend only; the whole batch is
                rolled back. Memory/file backends drop the colliding item.
        """
        accepted: List[Tuple[BatchItem, str]] = []
        records: Dict[str, URLRecord] = {}
        for item in items:
            if not item.correlation_id or not (item.original_url or "").strip():
                log.debug("skipping batch item with empty field: %r", item)
                continue
            try:
                origin = self._validate_url(item.original_url)
            except InvalidURLError:
                log.debug("skipping batch item with invalid URL: %r", item)
                continue
            accepted.append((item, origin))
            if origin not in records:
                records[origin] = URLRecord(
                    code=self.code_strategy.generate(origin), origin=origin, owner=owner or ""
                )

        if not records:
            return []

        stored = self.storage.create_batch(list(records.values()))

        results: List[BatchResult] = []
        for item, origin in accepted:
            code = stored.get(origin)
            if code is None:
                continue
            results.append(BatchResult(correlation_id=item.correlation_id, code=code, original_url=origin))
        return results

    def list_for_owner(self, owner: str) -> List[URLRecord]:
        """Live records created by `owner`."""
        return self.storage.list_by_owner(owner)

    def delete(self, owner: str, codes: Sequence[str]) -> Future:
        """
        Schedule a soft delete of `codes` owned by `owner` and return at once.

        The returned future resolves to a `DeletionReport`. Failures inside
        the job are logged, never raised to the caller.
        """
        return self.deleter.submit(owner, codes)

    def stats(self) -> Tuple[int, int]:
        """(live URL count, distinct owner count); (0, 0) without durable storage."""
        return self.storage.stats()

    def ping(self) -> None:
        """Raise BackendUnavailableError if the backend is unreachable."""
        self.storage.ping()

    def close(self) -> None:
        """Drain pending deletions, then close the backend."""
        self.deleter.close()
        self.storage.close()
