from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, List, Optional

import orjson
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ...data import ConnectionManager, QueryGateway
from ...errors import BadRequest, TenderTrackError

logger = logging.getLogger(__name__)

DEFAULT_STATIC_DIR = Path.cwd() / "dist"
INDEX_DOCUMENT = "index.html"


class QueryRequest(BaseModel):
    text: Optional[str] = None
    params: Optional[List[Any]] = None


def parse_query_request(raw: bytes) -> QueryRequest:
    """Read a ``/api/query`` body; a missing body is an empty request."""

    if not raw.strip():
        return QueryRequest()
    try:
        payload = orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        raise BadRequest("Request body must be JSON") from exc
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object")
    try:
        return QueryRequest.model_validate(payload)
    except PydanticValidationError as exc:
        fields = ", ".join(str(error["loc"][0]) for error in exc.errors() if error.get("loc"))
        raise BadRequest(f"Invalid query request: {fields or 'body'}") from exc


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": True, "message": message, **extra}, status_code=status_code)


def _resolve_static(static_dir: Path, requested: str) -> Optional[Path]:
    root = static_dir.resolve()
    candidate = (root / requested).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    if candidate.is_file():
        return candidate
    return None


def create_app(manager: ConnectionManager, *, static_dir: Optional[Path] = None, connect_on_startup: bool = True) -> FastAPI:
    """Build the gateway host around an already constructed ``manager``."""

    gateway = QueryGateway(manager)
    static_root = static_dir or DEFAULT_STATIC_DIR
    started = time.monotonic()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        # the port is already bound; connecting must not delay startup
        if connect_on_startup:
            manager.reconnect_in_background()
        yield
        logger.info("Shutting down gracefully...")
        manager.close()

    app = FastAPI(title="Tender Track Gateway", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.manager = manager
    app.state.gateway = gateway

    @app.exception_handler(TenderTrackError)
    async def handle_tender_track_error(_: Request, exc: TenderTrackError) -> JSONResponse:
        extra = {}
        if hasattr(exc, "reset"):
            extra = {"code": getattr(exc, "code", None), "reset": exc.reset}
        return _error_response(exc.status_code, exc.message, **extra)

    @app.get("/api/health")
    def health() -> JSONResponse:
        # always 200 so orchestrators do not restart the container
        try:
            probe = manager.probe()
            body = {
                "status": "healthy",
                "uptime": time.monotonic() - started,
                "timestamp": _timestamp(),
                "database": probe.database,
            }
            if probe.error:
                body["databaseError"] = probe.error
        except Exception as exc:  # noqa: BLE001
            logger.exception("Health check failed")
            body = {"status": "degraded", "error": str(exc), "timestamp": _timestamp()}
        return JSONResponse(body, status_code=200)

    @app.post("/api/query")
    async def run_query(request: Request) -> JSONResponse:
        raw = await request.body()
        gateway.ensure_connected()
        query = parse_query_request(raw)
        result = await run_in_threadpool(gateway.execute, query.text, query.params)
        return JSONResponse(jsonable_encoder(result.to_payload()))

    @app.get("/{full_path:path}")
    def serve_static(full_path: str) -> Any:
        target = _resolve_static(static_root, full_path) if full_path else None
        if target is not None:
            return FileResponse(target)
        index = static_root / INDEX_DOCUMENT
        if index.is_file():
            return FileResponse(index)
        return _error_response(404, "Not found")

    return app


def run_server(
    manager: ConnectionManager,
    *,
    host: str = "0.0.0.0",
    port: int = 8080,
    static_dir: Optional[Path] = None,
) -> None:
    import asyncio
    from hypercorn.asyncio import serve
    from hypercorn.config import Config

    app = create_app(manager, static_dir=static_dir)
    config = Config()
    config.bind = [f"{host}:{port}"]
    logger.info("Server running on port %s", port)
    logger.info("Health check available at: http://localhost:%s/api/health", port)
    asyncio.run(serve(app, config))
