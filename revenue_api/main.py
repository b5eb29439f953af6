from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from revenue_api.auth import router as auth_router
from revenue_api.core import config, db, logs
from revenue_api.core.http import ResponseEnvelopeMiddleware, register_exception_handlers
from revenue_api.core.middleware import RequestLoggerMiddleware
from revenue_api.core.ratelimit import FixedWindowRateLimiter, RateLimitMiddleware
from revenue_api.dashboard import router as dashboard_router
from revenue_api.docs import router as docs_router
from revenue_api.docs.sessions import DocsSessionStore
from revenue_api.revenue import router as revenue_router


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Initialize the DB pool once per process.
    await db.init_pool()
    await db.apply_schema()
    try:
        async with logs.persisted_logs():
            yield
    finally:
        await db.close_pool()


def _middleware_chain() -> list[tuple[type, dict[str, Any]]]:
    """
    Request interceptors, outermost first.
    """
    return [
        (RateLimitMiddleware, {}),
        (
            CORSMiddleware,
            {
                "allow_origins": config.cors_origins(),
                "allow_credentials": True,
                "allow_methods": ["*"],
                "allow_headers": ["*"],
            },
        ),
        (RequestLoggerMiddleware, {}),
        (ResponseEnvelopeMiddleware, {}),
    ]


def create_app() -> FastAPI:
    logs.configure_logging()

    app = FastAPI(
        title="i-revenue-api",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.started_at = time.monotonic()
    app.state.rate_limiter = FixedWindowRateLimiter(
        window_ms=config.rate_limit_window_ms(),
        max_requests=config.rate_limit_max_requests(),
    )
    app.state.docs_sessions = DocsSessionStore()
    app.state.docs_credentials = config.docs_credentials()

    # Starlette wraps the last added middleware outermost.
    for middleware_cls, options in reversed(_middleware_chain()):
        app.add_middleware(middleware_cls, **options)

    register_exception_handlers(app)

    app.include_router(auth_router.router, tags=["auth"])
    app.include_router(dashboard_router.router, tags=["app"])
    app.include_router(revenue_router.router, tags=["revenues"])
    app.include_router(docs_router.router)

    @app.get("/health", tags=["health"])
    def health(request: Request) -> dict:
        uptime = int(time.monotonic() - request.app.state.started_at)
        return {
            "message": "Serviço disponível",
            "uptime": f"{uptime}s",
        }

    return app


app = create_app()
