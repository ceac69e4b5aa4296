"""
Storage factory – pick the storage backend once, at construction time
=====================================================================

This module centralizes selection of the storage backend so the rest of
the app only ever sees a `BaseStorage`.

- Reads configuration **at call time** (a fresh `Settings()` unless one is
  passed), so tests can flip env vars between calls.
- Imports the DB backend **only if** "postgres" is selected.

Environment variables
---------------------
- SHORTLINK_STORAGE_BACKEND  : "memory", "file" or "postgres" (derived when unset)
- SHORTLINK_DB_DSN           : DSN string if backend == "postgres"
- SHORTLINK_FILE_STORAGE_PATH: journal path if backend == "file"
"""

import logging
from typing import Optional

from ..config import Settings
from .base import BaseStorage
from .file_storage import FileStorage
from .storage import MemoryStorage

log = logging.getLogger(__name__)


def get_storage(backend: Optional[str] = None, settings: Optional[Settings] = None, **kwargs) -> BaseStorage:
    """
    Return the storage backend named by `backend` or by configuration.

    Parameters
    ----------
    backend : str, optional
        "memory", "file" or "postgres". If omitted, uses settings.STORAGE_BACKEND.
    settings : Settings, optional
        Configuration snapshot; a fresh one is read from the environment if omitted.
    kwargs : dict
        Overrides: dsn="..." / connect_timeout=... for postgres, path="..." for file.

    Raises
    ------
    ValueError
        Unknown backend, or its required DSN / path is missing.
    """
    cfg = settings or Settings()
    be = (backend or cfg.STORAGE_BACKEND).strip().lower()

    log.info("selected storage backend: %r", be)

    if be == "memory":
        return MemoryStorage()

    if be == "file":
        path = kwargs.get("path") or cfg.FILE_STORAGE_PATH
        if not path:
            raise ValueError("FILE_STORAGE_PATH is required for file backend (env SHORTLINK_FILE_STORAGE_PATH)")
        return FileStorage(path)

    if be == "postgres":
        dsn = kwargs.get("dsn") or cfg.DB_DSN
        if not dsn:
            raise ValueError("DB_DSN is required for postgres backend (env SHORTLINK_DB_DSN)")
        # Local import to avoid hard dependency when not using postgres
        from .db_storage import DBStorage

        storage = DBStorage(
            dsn=dsn,
            connect_timeout=kwargs.get("connect_timeout", cfg.DB_CONNECT_TIMEOUT),
            statement_timeout=kwargs.get("statement_timeout", cfg.DB_STATEMENT_TIMEOUT),
        )
        if cfg.DB_INIT_SCHEMA:
            storage.ensure_schema()
        return storage

    raise ValueError(f"Unknown storage backend: {be!r}")
