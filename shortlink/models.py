"""
Domain records for Shortlink.

`URLRecord` is the single persisted entity. Its code, origin, owner and
created_at are write-once; only `deleted` ever changes, and only from
False to True. Records are frozen, so a soft delete produces a new record
via `URLRecord.mark_deleted()`.

`BatchItem` and `BatchResult` are transient: they carry caller input and
the per-item outcome of a batch shorten.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class URLRecord:
    code: str
    origin: str
    owner: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    deleted: bool = False

    def mark_deleted(self) -> "URLRecord":
        """Return a copy flagged as soft-deleted."""
        return replace(self, deleted=True)

    # ---- journal line format (file backend) ----

    def to_entry(self) -> Dict[str, Any]:
        return {
            "short_url": self.code,
            "original_url": self.origin,
            "user_id": self.owner,
            "is_deleted": self.deleted,
        }

    @classmethod
    def from_entry(cls, entry: Dict[str, Any]) -> "URLRecord":
        """Build a record from one journal object.

        Only a JSON `true` marks the record deleted.

        Raises:
            KeyError: if `short_url` or `original_url` is missing.
        """
        return cls(
            code=str(entry["short_url"]),
            origin=str(entry["original_url"]),
            owner=str(entry.get("user_id") or ""),
            deleted=entry.get("is_deleted") is True,
        )


@dataclass(frozen=True)
class BatchItem:
    correlation_id: str
    original_url: str


@dataclass(frozen=True)
class BatchResult:
    correlation_id: str
    code: str
    original_url: str
