from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request

from anistream.infrastructure.config import AppConfig
from anistream.interfaces.api.errors import register_error_handlers
from anistream.interfaces.app_state import AppState
from anistream.interfaces.composition import lifespan

log = structlog.get_logger(__name__)

API_PREFIX = "/api/v1"


def build_app(config: AppConfig) -> FastAPI:
    """Build the FastAPI app: configuration and routes only.

    Resources (HTTP client, cache, provider clients) are created in lifespan().
    """
    app = FastAPI(
        title="anistream",
        description="Episode resolution and streaming source pipeline",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from anistream.interfaces.api.catalog.router import router as catalog_router
    from anistream.interfaces.api.episodes.router import router as episodes_router
    from anistream.interfaces.api.stats.router import router as stats_router

    app.include_router(episodes_router, prefix=API_PREFIX)
    app.include_router(catalog_router, prefix=API_PREFIX)
    app.include_router(stats_router, prefix=API_PREFIX)

    register_error_handlers(app)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                query=str(request.url.query),
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
