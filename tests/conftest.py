"""
Global pytest fixtures for the Shortlink test suite.

Responsibilities:
    - Provide a fresh FastAPI TestClient via the app factory for integration tests
    - Provide isolated in-memory and file-journaled storage fixtures
    - Provide a ShortenerService fixture wired to the in-memory storage
    - Provide an IdentityService with a fixed test secret

App fixtures:
    `app` builds a new application per test through `create_app()` and closes
    its service (deletion worker + storage) afterwards.
"""

import pytest
from fastapi.testclient import TestClient

from auth.service import IdentityService
from main import create_app
from shortlink.config import Settings
from shortlink.manager.shortener_service import ShortenerService
from shortlink.storage.file_storage import FileStorage
from shortlink.storage.storage import MemoryStorage

TEST_SECRET = "test-secret"
TEST_BASE_URL = "http://short.test"


@pytest.fixture
def app_settings(monkeypatch) -> Settings:
    """Settings for an in-memory app with a trusted loopback subnet."""
    monkeypatch.setenv("SHORTLINK_STORAGE_BACKEND", "memory")
    monkeypatch.setenv("SHORTLINK_BASE_URL", TEST_BASE_URL)
    monkeypatch.setenv("SHORTLINK_SECRET_KEY", TEST_SECRET)
    monkeypatch.setenv("SHORTLINK_TRUSTED_SUBNET", "10.0.0.0/8")
    monkeypatch.delenv("SHORTLINK_DB_DSN", raising=False)
    monkeypatch.delenv("SHORTLINK_FILE_STORAGE_PATH", raising=False)
    return Settings()


@pytest.fixture
def app(app_settings):
    application = create_app(settings=app_settings)
    yield application
    application.state.service.close()


@pytest.fixture
def client(app) -> TestClient:
    """
    Provide a fresh TestClient with a new app instance.

    Notes:
        - The client keeps cookies between requests, so it behaves like one owner.
        - Build a second TestClient over the same `app` to act as another owner.
    """
    return TestClient(app)


@pytest.fixture
def storage() -> MemoryStorage:
    """Provide a fresh in-memory storage backend."""
    return MemoryStorage()


@pytest.fixture
def journal_path(tmp_path) -> str:
    return str(tmp_path / "journal.jsonl")


@pytest.fixture
def file_storage(journal_path) -> FileStorage:
    """Provide a file-journaled storage backed by a temp file."""
    return FileStorage(journal_path)


@pytest.fixture
def service(storage: MemoryStorage):
    """
    Provide a ShortenerService wired to the storage fixture.

    The deletion worker is closed after the test.
    """
    svc = ShortenerService(storage=storage)
    yield svc
    svc.close()


@pytest.fixture
def identity() -> IdentityService:
    return IdentityService(TEST_SECRET)
