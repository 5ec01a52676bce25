# =============================================================================
# Fitness Tracker API v2.0.0
# Workout plans, workouts, goals, personal records and analytics over an
# injectable repository (in-memory by default, SQLAlchemy async for SQL).
# =============================================================================

from __future__ import annotations

import logging
import time
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fitness_api import __version__
from fitness_api.config import Settings, load_settings
from fitness_api.errors import FitnessApiError
from fitness_api.routers import ROUTERS
from fitness_api.schemas import issues_from
from fitness_api.store import Repository, build_repository

log = logging.getLogger("fitness_api")

MAX_TRACKED_CLIENTS = 1000


def _access_log(request: Request, status_code: int, started: float) -> None:
    elapsed_ms = (time.time() - started) * 1000
    log.info(f"{request.method} {request.url.path} {status_code} {elapsed_ms:.1f}ms")


def _error(status_code: int, error: str, details: Optional[List[Any]] = None) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "error": error}
    if details:
        body["details"] = [d.model_dump() if hasattr(d, "model_dump") else d for d in details]
    return JSONResponse(status_code=status_code, content=body)


def create_app(settings: Optional[Settings] = None, repository: Optional[Repository] = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(message)s")
    repo = repository or build_repository(settings)

    # -------------------------------------------------------------------------
    # App (with lifespan)
    # -------------------------------------------------------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        log.info(f"Storage backend: {repo.backend}")
        await repo.init()
        yield
        await repo.close()

    app = FastAPI(
        title="Fitness Tracker API",
        description="Workout plans, workout sessions, goals, personal records and analytics.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.repository = repo
    app.state.started_at = time.monotonic()
    app.state.rate_limits = defaultdict(list)

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # -------------------------------------------------------------------------
    # Rate limiting middleware (simple in-memory, per-IP) + access log
    # -------------------------------------------------------------------------
    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        store: Dict[str, List[float]] = app.state.rate_limits
        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - settings.rate_limit_window

        # Clean old entries
        store[client_ip] = [t for t in store[client_ip] if t > window_start]

        if len(store[client_ip]) >= settings.rate_limit_requests:
            log.warning(f"Rate limit exceeded for {client_ip}")
            return _error(429, "Too many requests, please try again later.")

        store[client_ip].append(now)
        # Prune stale IPs to prevent memory leak
        if len(store) > MAX_TRACKED_CLIENTS:
            stale = [ip for ip, ts in store.items() if not ts or ts[-1] <= window_start]
            for ip in stale:
                del store[ip]

        try:
            response = await call_next(request)
        except Exception:
            _access_log(request, 500, now)
            raise
        response.headers["X-RateLimit-Limit"] = str(settings.rate_limit_requests)
        response.headers["X-RateLimit-Remaining"] = str(
            settings.rate_limit_requests - len(store[client_ip])
        )
        _access_log(request, response.status_code, now)
        return response

    # -------------------------------------------------------------------------
    # Error handlers: every failure leaves as an envelope
    # -------------------------------------------------------------------------
    @app.exception_handler(FitnessApiError)
    async def api_error_handler(request: Request, exc: FitnessApiError):
        log.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.message}")
        return _error(exc.status_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if any(e.get("type") == "json_invalid" for e in errors):
            return _error(400, "Invalid JSON payload")
        issues = issues_from(errors)
        log.info(f"{request.method} {request.url.path} -> 400 ({len(issues)} validation issues)")
        return _error(400, "Validation error", issues)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error(404, "Route not found")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return _error(500, "Internal server error")

    # -------------------------------------------------------------------------
    # Health / Root
    # -------------------------------------------------------------------------
    @app.get("/")
    async def root():
        return {
            "success": True,
            "message": f"Fitness Tracker API v{__version__}",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health():
        ok = await repo.ping()
        return {
            "status": "healthy" if ok else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - app.state.started_at, 3),
            "environment": settings.environment,
            "backend": repo.backend,
        }

    for router in ROUTERS:
        app.include_router(router)

    return app


app = create_app()
