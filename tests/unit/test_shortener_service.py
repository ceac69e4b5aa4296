"""
Unit tests for ShortenerService.

Covers:
    - URL validation (valid/invalid)
    - Idempotent shorten across owners (first owner keeps the record)
    - Resolve: live, unknown (NotFound), soft-deleted (Gone)
    - Batch shorten: per-item validation, in-order results, duplicates
    - Owner isolation for listing and deletion
    - Deletion returns immediately and is chunked by batch size
    - Code collisions are logged and raised
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from shortlink.exceptions import CodeCollisionError, GoneError, InvalidURLError, NotFoundError
from shortlink.manager.shortener_service import ShortenerService
from shortlink.manager.strategies import BaseStrategy, generate_code
from shortlink.models import BatchItem
from shortlink.storage.storage import MemoryStorage


class FixedStrategy(BaseStrategy):
    """Always returns the same code, to force collisions."""

    def generate(self, origin: str) -> str:
        return "fixed1"


# -------------------------
# URL validation
# -------------------------

@pytest.mark.parametrize(
    "url,is_valid",
    [
        ("https://example.com", True),
        ("http://example.com/path?q=1", True),
        ("  https://padded.example  ", True),
        ("ftp://files.example.com", True),
        ("", False),
        ("   ", False),
        ("example.com", False),
        ("not a url", False),
        ("https://", False),
        ("http://[::1", False),
    ],
)
def test_validate_url(service, url, is_valid):
    if is_valid:
        assert service.shorten("u1", url)
    else:
        with pytest.raises(InvalidURLError):
            service.shorten("u1", url)


def test_invalid_url_stores_nothing(service, storage):
    with pytest.raises(InvalidURLError):
        service.shorten("u1", "nope")
    assert len(storage) == 0


# -------------------------
# Shorten / resolve
# -------------------------

def test_shorten_then_resolve(service):
    code = service.shorten("u1", "https://example.com/a")
    assert code == generate_code("https://example.com/a")
    record = service.resolve(code)
    assert record.origin == "https://example.com/a"
    assert record.owner == "u1"


def test_shorten_trims_whitespace(service):
    code = service.shorten("u1", "  https://example.com/a\n")
    assert service.resolve(code).origin == "https://example.com/a"


def test_shorten_is_idempotent_across_owners(service):
    code1, created1 = service.create_or_get("alice", "https://example.com/a")
    code2, created2 = service.create_or_get("bob", "https://example.com/a")

    assert code1 == code2
    assert (created1, created2) == (True, False)
    assert service.resolve(code1).owner == "alice"
    assert service.list_for_owner("bob") == []


def test_resolve_unknown_and_gone(service):
    assert service.resolve("nosuchcode") is None
    with pytest.raises(NotFoundError):
        service.resolve_or_raise("nosuchcode")

    code = service.shorten("u1", "https://example.com/gone")
    service.delete("u1", [code]).result(timeout=5)

    assert service.resolve(code).deleted is True
    with pytest.raises(GoneError):
        service.resolve_or_raise(code)


def test_reshorten_deleted_origin_returns_existing_code(service):
    code = service.shorten("u1", "https://example.com/gone")
    service.delete("u1", [code]).result(timeout=5)

    again, created = service.create_or_get("u2", "https://example.com/gone")
    assert again == code
    assert created is False
    assert service.resolve(code).deleted is True


def test_code_collision_is_logged_and_raised(storage, caplog):
    svc = ShortenerService(storage=storage, code_strategy=FixedStrategy())
    try:
        svc.shorten("u1", "https://one.example")
        with caplog.at_level(logging.ERROR), pytest.raises(CodeCollisionError):
            svc.shorten("u1", "https://two.example")
    finally:
        svc.close()
    assert "code collision" in caplog.text
    assert storage.get("fixed1").origin == "https://one.example"


# -------------------------
# Batch shorten
# -------------------------

def test_batch_shorten_skips_invalid_items(service):
    results = service.batch_shorten("u1", [
        BatchItem("", "https://x.example"),
        BatchItem("c1", "https://y.example"),
        BatchItem("c2", ""),
        BatchItem("c3", "not a url"),
        BatchItem("c4", "https://z.example"),
    ])

    assert [r.correlation_id for r in results] == ["c1", "c4"]
    assert results[0].code == generate_code("https://y.example")
    assert results[1].original_url == "https://z.example"


def test_batch_shorten_resolves_existing_and_duplicates(service):
    existing = service.shorten("other", "https://old.example")

    results = service.batch_shorten("u1", [
        BatchItem("a", "https://old.example"),
        BatchItem("b", "https://new.example"),
        BatchItem("c", "https://new.example"),
    ])

    assert [r.correlation_id for r in results] == ["a", "b", "c"]
    assert results[0].code == existing
    assert results[1].code == results[2].code
    assert [r.code for r in service.list_for_owner("u1")] == [results[1].code]


def test_batch_shorten_all_invalid(service, storage):
    assert service.batch_shorten("u1", [BatchItem("a", "")]) == []
    assert service.batch_shorten("u1", []) == []
    assert len(storage) == 0


# -------------------------
# Listing / deletion
# -------------------------

def test_list_for_owner_is_isolated(service):
    a = service.shorten("alice", "https://a.example")
    b = service.shorten("bob", "https://b.example")
    assert [r.code for r in service.list_for_owner("alice")] == [a]
    assert [r.code for r in service.list_for_owner("bob")] == [b]
    assert service.list_for_owner("carol") == []


def test_delete_other_owners_code_is_ignored(service):
    code = service.shorten("alice", "https://a.example")
    report = service.delete("mallory", [code]).result(timeout=5)

    assert report.deleted == 0
    assert service.resolve(code).deleted is False


def test_delete_returns_before_storage_finishes():
    gate = threading.Event()

    class BlockingStorage(MemoryStorage):
        def mark_deleted(self, codes, owner):
            gate.wait(timeout=5)
            return super().mark_deleted(codes, owner)

    svc = ShortenerService(storage=BlockingStorage())
    try:
        code = svc.shorten("u1", "https://slow.example")
        future = svc.delete("u1", [code])
        assert not future.done()
        assert svc.resolve(code).deleted is False
        gate.set()
        assert future.result(timeout=5).deleted == 1
    finally:
        gate.set()
        svc.close()


def test_delete_is_chunked():
    calls = []

    class CountingStorage(MemoryStorage):
        def mark_deleted(self, codes, owner):
            codes = list(codes)
            calls.append(len(codes))
            return super().mark_deleted(codes, owner)

    svc = ShortenerService(storage=CountingStorage(), delete_batch_size=100)
    try:
        svc.delete("u1", [f"code{i:04d}" for i in range(250)]).result(timeout=5)
    finally:
        svc.close()
    assert calls == [100, 100, 50]


# -------------------------
# Stats / ping / concurrency
# -------------------------

def test_stats_and_ping_on_memory(service):
    service.shorten("u1", "https://a.example")
    assert service.stats() == (0, 0)
    assert service.ping() is None


def test_concurrent_shorten_creates_one_record(service, storage):
    url = "https://race.example"
    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(lambda i: service.create_or_get(f"u{i}", url), range(32)))

    codes = {code for code, _ in outcomes}
    assert codes == {generate_code(url)}
    assert sum(1 for _, created in outcomes if created) == 1
    assert len(storage) == 1


def test_close_closes_storage():
    closed = []

    class ClosingStorage(MemoryStorage):
        def close(self):
            closed.append(True)

    svc = ShortenerService(storage=ClosingStorage())
    svc.close()
    assert closed == [True]
    assert svc.deleter.closed is True


def test_anonymous_owner_is_empty_string(storage, service):
    code = service.shorten(None, "https://anon.example")
    assert storage.get(code).owner == ""
