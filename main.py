"""
Main API module for Shortlink.

Responsibilities:
    - Expose the HTTP surface over ShortenerService: plain-text and JSON
      shorten, batch shorten, redirect, per-owner listing and deletion,
      ping and internal stats
    - Read or mint the owner's `auth_token` cookie on owner-scoped routes
    - Map service errors to status codes (400/404/409/410/500)

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - The storage backend is chosen once from settings (memory, file or
      postgres) and injected into the service.
    - The lifespan shutdown drains pending deletions and closes the backend
      (the file backend snapshots its journal there).
"""

import contextlib
import ipaddress
import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import Body, Depends, FastAPI, HTTPException, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from pydantic import BaseModel

from auth.dependencies import OwnerContext, get_owner
from auth.service import IdentityService
from shortlink.config import Settings
from shortlink.exceptions import (
    BackendUnavailableError,
    CodeCollisionError,
    GoneError,
    InvalidURLError,
    NotFoundError,
)
from shortlink.manager.deletion import DeletionQueue, QueueClosed
from shortlink.manager.shortener_service import ShortenerService
from shortlink.manager.strategies import is_valid_code
from shortlink.models import BatchItem
from shortlink.storage.base import BaseStorage
from shortlink.storage.storage_factory import get_storage

log = logging.getLogger("shortlink")


class ShortenRequest(BaseModel):
    """Request payload for the JSON shorten endpoint."""
    url: str


class BatchShortenRequest(BaseModel):
    """One entry of a batch shorten request."""
    correlation_id: str = ""
    original_url: str = ""


IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def _parse_subnet(cidr: str) -> Optional[IPNetwork]:
    if not cidr:
        return None
    try:
        return ipaddress.ip_network(cidr, strict=False)
    except ValueError:
        log.warning("ignoring invalid trusted subnet %r", cidr)
        return None


def create_app(settings: Optional[Settings] = None, storage: Optional[BaseStorage] = None) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        settings (Optional[Settings]): Configuration; read from the environment when omitted.
        storage (Optional[BaseStorage]): Backend override; chosen from settings when omitted.

    Returns:
        FastAPI: A fully configured application with its own storage,
                 deletion worker and identity service.
    """
    cfg = settings or Settings()

    if not logging.getLogger().handlers:
        logging.basicConfig(level=cfg.LOG_LEVEL)

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    backend = storage if storage is not None else get_storage(settings=cfg)
    deleter = DeletionQueue(backend, batch_size=cfg.DELETE_BATCH_SIZE, timeout=cfg.DELETE_TIMEOUT)
    service = ShortenerService(storage=backend, deleter=deleter)
    identity = IdentityService(cfg.SECRET_KEY)
    trusted_subnet = _parse_subnet(cfg.TRUSTED_SUBNET)
    base_url = cfg.BASE_URL

    log.info("shortlink storage backend: %s", type(backend).__name__)

    @contextlib.asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        log.info("shutting down: draining deletions and closing storage")
        await run_in_threadpool(service.close)

    app = FastAPI(
        title="Shortlink",
        description="Deterministic multi-tenant URL shortener",
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.service = service
    app.state.identity = identity

    # ----------------------------------------------------------------
    # Utilities
    # ----------------------------------------------------------------
    def _short_url(code: str) -> str:
        return f"{base_url}/{code}"

    @app.exception_handler(BackendUnavailableError)
    async def _backend_unavailable(_request: Request, exc: BackendUnavailableError):
        log.error("storage backend unavailable: %s", exc)
        return PlainTextResponse("Internal Server Error", status_code=500)

    @app.exception_handler(CodeCollisionError)
    async def _code_collision(_request: Request, exc: CodeCollisionError):
        return PlainTextResponse("Internal Server Error", status_code=500)

    @app.exception_handler(QueueClosed)
    async def _queue_closed(_request: Request, exc: QueueClosed):
        log.warning("deletion rejected during shutdown: %s", exc)
        return PlainTextResponse("Service Unavailable", status_code=503)

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.get("/ping")
    def ping() -> Response:
        """Liveness of the storage backend: 200 OK or 500."""
        service.ping()
        return PlainTextResponse("OK")

    @app.post("/")
    async def shorten_text(request: Request, owner: OwnerContext = Depends(get_owner)) -> Response:
        """
        Shorten a URL sent as the raw request body.

        Returns 201 with the short URL as text, or 409 with the existing
        short URL when the origin was already shortened.
        """
        raw = (await request.body()).decode("utf-8", errors="replace")
        try:
            code, created = await run_in_threadpool(service.create_or_get, owner.owner_id, raw)
        except InvalidURLError:
            raise HTTPException(status_code=400, detail="Invalid URL")
        status = 201 if created else 409
        return owner.apply(PlainTextResponse(_short_url(code), status_code=status))

    @app.post("/api/shorten")
    def shorten_json(req: ShortenRequest, owner: OwnerContext = Depends(get_owner)) -> Response:
        """JSON variant: {"url": ...} -> {"result": short URL}, 201 or 409."""
        try:
            code, created = service.create_or_get(owner.owner_id, req.url)
        except InvalidURLError:
            raise HTTPException(status_code=400, detail="Invalid URL")
        status = 201 if created else 409
        return owner.apply(JSONResponse({"result": _short_url(code)}, status_code=status))

    @app.post("/api/shorten/batch")
    def shorten_batch(
        items: List[BatchShortenRequest], owner: OwnerContext = Depends(get_owner)
    ) -> Response:
        """Batch shorten; invalid or incomplete items are dropped, not fatal."""
        if not items:
            raise HTTPException(status_code=400, detail="Batch request is empty")
        results = service.batch_shorten(
            owner.owner_id,
            [BatchItem(correlation_id=i.correlation_id, original_url=i.original_url) for i in items],
        )
        body = [{"correlation_id": r.correlation_id, "short_url": _short_url(r.code)} for r in results]
        return owner.apply(JSONResponse(body, status_code=201))

    @app.get("/api/user/urls")
    def user_urls(owner: OwnerContext = Depends(get_owner)) -> Response:
        """The caller's live links; 204 when there are none."""
        records = service.list_for_owner(owner.owner_id)
        if not records:
            return owner.apply(Response(status_code=204))
        body = [{"short_url": _short_url(r.code), "original_url": r.origin} for r in records]
        return owner.apply(JSONResponse(body))

    @app.delete("/api/user/urls")
    def delete_user_urls(
        codes: List[str] = Body(...), owner: OwnerContext = Depends(get_owner)
    ) -> Response:
        """Accept a soft delete and return 202 before it runs."""
        service.delete(owner.owner_id, codes)
        return owner.apply(Response(status_code=202))

    @app.get("/api/internal/stats")
    def internal_stats(request: Request) -> Dict[str, Any]:
        """Aggregate counters, only for callers inside the trusted subnet."""
        real_ip = request.headers.get("x-real-ip", "")
        if trusted_subnet is None or not real_ip:
            raise HTTPException(status_code=403, detail="forbidden")
        try:
            address = ipaddress.ip_address(real_ip.strip())
        except ValueError:
            raise HTTPException(status_code=403, detail="forbidden")
        if address not in trusted_subnet:
            raise HTTPException(status_code=403, detail="forbidden")
        urls, users = service.stats()
        return {"urls": urls, "users": users}

    @app.get("/{code}")
    def redirect(code: str) -> Response:
        """307 to the origin; 404 unknown, 410 soft-deleted, 400 malformed code."""
        if not is_valid_code(code):
            raise HTTPException(status_code=400, detail="Invalid ID format")
        try:
            record = service.resolve_or_raise(code)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Not Found")
        except GoneError:
            raise HTTPException(status_code=410, detail="Gone")
        return RedirectResponse(url=record.origin, status_code=307)

    return app


# `uvicorn main:app` and `from main import app` keep working.
app = create_app()
