"""HTTP API for the security records dashboard.

Three JSON routes over a :class:`~secrecords.store.RecordStore`:

    GET  /api/records/summary?year=2024&month=3   -> {"2024-03-01": 2, ...}
    GET  /api/records?date=2024-03-01             -> [record, ...]
    POST /api/records  {"date": ..., "records": [...]}  -> {"success": true}

Storage failures become ``500 {"error": <message>}``; malformed input
becomes ``400 {"error": <message>}``. When a static directory is
configured, every other GET path serves a file from it or falls back to
its ``index.html`` so a single-page frontend can route client-side.

Usage:
    secrecords serve                      # http://127.0.0.1:3001
    secrecords serve --port 9000 --data-dir ./data
"""

from __future__ import annotations

import logging
from pathlib import Path
from time import perf_counter
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from fastapi.responses import JSONResponse
    from starlette.requests import Request
    from starlette.responses import Response

    from secrecords.config import ServerConfig

from secrecords.datekeys import is_date_key
from secrecords.store import AggregationError, RecordStore, StorageReadError, StorageWriteError
from secrecords.summary import summarize

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.html"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error_response(message: str, status_code: int) -> JSONResponse:
    """Return ``{"error": message}`` with *status_code* and log it."""
    from fastapi.responses import JSONResponse

    logger.warning("API error [%s]: %s", status_code, message)
    return JSONResponse({"error": message}, status_code=status_code)


def _safe_int(
    value: str | None,
    name: str,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int | JSONResponse:
    """Parse a query-param string to int, returning a 400 error response on failure."""
    if value is None or value == "":
        return _error_response(f"Missing required parameter: {name}", 400)
    try:
        result = int(value)
    except (ValueError, TypeError):
        return _error_response(f'Invalid value for {name}: "{value}". Must be an integer.', 400)
    if min_value is not None and result < min_value:
        return _error_response(f"Invalid value for {name}: {result}. Must be >= {min_value}.", 400)
    if max_value is not None and result > max_value:
        return _error_response(f"Invalid value for {name}: {result}. Must be <= {max_value}.", 400)
    return result


def _require_date_key(value: Any) -> str | JSONResponse:
    if value is None or value == "":
        return _error_response("Missing required parameter: date", 400)
    if not isinstance(value, str) or not is_date_key(value):
        return _error_response(f"Invalid date: {value!r}. Expected YYYY-MM-DD.", 400)
    return value


def _parse_month(params: Mapping[str, str]) -> tuple[int, int] | JSONResponse:
    year = _safe_int(params.get("year"), "year", min_value=1, max_value=9999)
    if not isinstance(year, int):
        return year
    month = _safe_int(params.get("month"), "month", min_value=1, max_value=12)
    if not isinstance(month, int):
        return month
    return year, month


async def _parse_json_body(request: Request) -> dict[str, Any] | JSONResponse:
    """Parse and validate a JSON object body, returning 400 on failure."""
    import json

    try:
        body = await request.json()
    except (json.JSONDecodeError, ValueError, UnicodeDecodeError):
        return _error_response("Invalid JSON body", 400)
    if not isinstance(body, dict):
        return _error_response("Request body must be a JSON object", 400)
    return body


def _resolve_static(static_dir: Path, request_path: str) -> Path | None:
    """Map a request path to a file under *static_dir*, or ``None``.

    Paths that resolve outside *static_dir* are treated as missing.
    """
    root = static_dir.resolve()
    candidate = (root / request_path.lstrip("/")).resolve()
    if candidate != root and not candidate.is_relative_to(root):
        return None
    if candidate.is_file():
        return candidate
    return None


# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------


def create_records_router(store: RecordStore) -> Any:
    """Build the APIRouter for the ``/records`` endpoints.

    Store calls run through ``run_in_threadpool`` so a slow disk read or
    rename never stalls other in-flight requests. There is no
    cross-request locking.
    """
    from fastapi import APIRouter, Request
    from fastapi.responses import JSONResponse
    from starlette.concurrency import run_in_threadpool

    # Expose Request in module globals so PEP 563 deferred annotations resolve
    globals().update(Request=Request, JSONResponse=JSONResponse)

    router = APIRouter()

    @router.get("/records/summary")
    async def api_month_summary(request: Request) -> JSONResponse:
        """Record counts per day for one month."""
        parsed = _parse_month(request.query_params)
        if not isinstance(parsed, tuple):
            return parsed
        year, month = parsed
        try:
            summary = await run_in_threadpool(summarize, store, year, month)
        except AggregationError:
            logger.exception("Failed to enumerate buckets for %04d-%02d", year, month)
            return _error_response("Failed to load month summary", 500)
        except Exception:
            logger.exception("BUG: Unexpected error summarizing %04d-%02d", year, month)
            return _error_response("Failed to load month summary", 500)
        return JSONResponse(summary)

    @router.get("/records")
    async def api_get_records(request: Request) -> JSONResponse:
        """Records for one day; ``[]`` when nothing was saved for it."""
        date_key = _require_date_key(request.query_params.get("date"))
        if not isinstance(date_key, str):
            return date_key
        try:
            records = await run_in_threadpool(store.get, date_key)
        except StorageReadError:
            logger.exception("Failed to read records for %s", date_key)
            return _error_response("Failed to read records", 500)
        except Exception:
            logger.exception("BUG: Unexpected error reading records for %s", date_key)
            return _error_response("Failed to read records", 500)
        return JSONResponse(records)

    @router.post("/records")
    async def api_save_records(request: Request) -> JSONResponse:
        """Replace every record stored for ``date`` with ``records``."""
        body = await _parse_json_body(request)
        if not isinstance(body, dict):
            return body
        date_key = _require_date_key(body.get("date"))
        if not isinstance(date_key, str):
            return date_key
        records = body.get("records")
        if not isinstance(records, list):
            return _error_response("records must be a JSON array", 400)
        try:
            await run_in_threadpool(store.put, date_key, records)
        except StorageWriteError:
            logger.exception("Failed to write records for %s", date_key)
            return _error_response("Failed to write records", 500)
        except Exception:
            logger.exception("BUG: Unexpected error writing records for %s", date_key)
            return _error_response("Failed to write records", 500)
        logger.info("Saved %d record(s) for %s", len(records), date_key, extra={"date_key": date_key})
        return JSONResponse({"success": True})

    return router


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(store: RecordStore, *, static_dir: Path | None = None) -> Any:
    """Create the FastAPI application serving *store*.

    With *static_dir*, unmatched GET paths serve files from it and fall
    back to its ``index.html``; without it they return 404.
    """
    from fastapi import FastAPI, Request
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import FileResponse, JSONResponse

    globals().update(Request=Request, JSONResponse=JSONResponse, FileResponse=FileResponse)

    app = FastAPI(title="Security Records", docs_url=None, redoc_url=None)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        start = perf_counter()
        response = await call_next(request)
        duration_ms = round((perf_counter() - start) * 1000, 2)
        logger.info(
            "%s %s -> %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={"route": request.url.path, "status": response.status_code, "duration_ms": duration_ms},
        )
        return response

    @app.get("/api/health")
    async def api_health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(create_records_router(store), prefix="/api")

    @app.get("/{full_path:path}", response_model=None)
    async def spa_fallback(full_path: str) -> FileResponse | JSONResponse:
        if static_dir is None:
            return _error_response(f"Not found: /{full_path}", 404)
        target = _resolve_static(static_dir, full_path) or _resolve_static(static_dir, INDEX_FILENAME)
        if target is None:
            return _error_response(f"Not found: /{full_path}", 404)
        return FileResponse(target)

    return app


def main(config: ServerConfig) -> None:
    """Open the store named by *config* and serve it until interrupted."""
    import uvicorn

    store = RecordStore(config.data_dir)
    app = create_app(store, static_dir=config.static_dir)
    logger.info("Serving %s on %s:%d", store.data_dir, config.host, config.port)
    print(f"Security records service: http://localhost:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level="warning")
