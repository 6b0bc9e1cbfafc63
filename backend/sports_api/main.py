"""
FastAPI application entrypoint.

Lifespan:
  • On startup: verify DB connectivity, start the usage recorder and the
    rate-limiter sweep task.
  • On shutdown: stop both, flush pending last_used_at writes, dispose
    the engine.

Routers:
  • /api/v1/{sport} — API-key protected, sport-scoped, rate limited
  • /health         — shallow liveness probe (public)
"""

import asyncio
import contextlib
import datetime
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from sports_api.auth.dependencies import ERROR_CODES, ApiError
from sports_api.auth.gate import AuthGate
from sports_api.auth.key_store import KeyStore, utcnow
from sports_api.auth.storage import KeyStorage, SqlAlchemyKeyStorage
from sports_api.core.config import settings
from sports_api.core.database import async_session_factory, engine
from sports_api.routers.access import router as access_router
from sports_api.schemas.responses import ErrorInfo, ErrorResponse
from sports_api.services.rate_limiter import RateLimiter
from sports_api.services.usage_recorder import UsageRecorder

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def _sweep_rate_limiter(
    limiter: RateLimiter,
    interval: float,
    clock: Callable[[], datetime.datetime],
) -> None:
    """Periodically drop counters of keys idle since an earlier window."""
    while True:
        await asyncio.sleep(interval)
        limiter.sweep(clock().timestamp())


async def _verify_database() -> bool:
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning(
            "Could not reach the database on startup. "
            "The app will start, but requests will be denied as unavailable "
            "until the DB is reachable."
        )
        return False
    logger.info("Database connection verified ✓")
    return True


async def _http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render every HTTP error in the {"success": false, "error": ...} envelope."""
    code = exc.code if isinstance(exc, ApiError) else ERROR_CODES.get(exc.status_code, "ERROR")
    body = ErrorResponse(error=ErrorInfo(code=code, message=str(exc.detail)))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=getattr(exc, "headers", None),
    )


def create_app(
    storage: KeyStorage | None = None,
    *,
    clock: Callable[[], datetime.datetime] = utcnow,
) -> FastAPI:
    """
    Build the application.

    With no `storage`, keys are read from Postgres via SqlAlchemyKeyStorage
    and the engine's lifecycle is managed here. Tests pass their own
    storage and, when they need a fixed rate window, their own clock.
    """
    owns_database = storage is None
    if storage is None:
        storage = SqlAlchemyKeyStorage(async_session_factory)

    key_store = KeyStore(
        storage,
        cache_ttl=settings.KEY_CACHE_TTL_SECONDS,
        lookup_timeout=settings.STORAGE_TIMEOUT_SECONDS,
    )
    rate_limiter = RateLimiter(
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        shards=settings.RATE_LIMIT_SHARDS,
    )
    usage_recorder = UsageRecorder(
        storage,
        maxsize=settings.USAGE_QUEUE_MAXSIZE,
        flush_interval=settings.USAGE_FLUSH_INTERVAL_SECONDS,
        write_timeout=settings.STORAGE_TIMEOUT_SECONDS,
    )
    gate = AuthGate(key_store, rate_limiter, usage_recorder, clock=clock)

    # ── Lifespan ────────────────────────────────────────────
    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        """Startup / shutdown lifecycle."""
        if owns_database:
            await _verify_database()

        usage_recorder.start()
        sweeper = asyncio.create_task(
            _sweep_rate_limiter(rate_limiter, settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS, clock),
            name="rate-limit-sweep",
        )

        yield  # ← application runs here

        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await usage_recorder.stop()

        if owns_database:
            await engine.dispose()
            logger.info("Database engine disposed ✓")

    # ── App ─────────────────────────────────────────────────
    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        description=(
            "Sports match data API — API-key authenticated, "
            "sport-scoped, rate limited per key."
        ),
        lifespan=lifespan,
    )
    app.state.gate = gate

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Authorization", "X-API-Key", "Content-Type"],
        expose_headers=["Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)

    # Mount routers
    app.include_router(access_router, prefix="/api/v1")

    # ── Health check ────────────────────────────────────────
    @app.get(
        "/health",
        tags=["System"],
        summary="Liveness probe",
    )
    async def health_check() -> dict[str, str]:
        """Shallow health check — confirms the process is alive."""
        return {"status": "healthy", "service": "sports-api"}

    return app


app = create_app()
