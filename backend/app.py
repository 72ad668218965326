"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.v1 import auth, users
from api.v1.responses import ApiResponse
from core import configure_logging, get_settings, setup_exception_handlers
from db import get_engine
from services import RateLimitMiddleware, get_rate_limiter

API_PREFIX = "/api/v1"
RATE_LIMITED_PATHS = frozenset(
    f"{API_PREFIX}/users/{path}" for path in ("register", "login", "refresh-token")
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    if get_engine.cache_info().currsize:
        await get_engine().dispose()


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    setup_exception_handlers(app)

    app.add_middleware(
        RateLimitMiddleware,
        limiter_factory=get_rate_limiter,
        limited_paths=RATE_LIMITED_PATHS,
    )
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(auth.router, prefix=API_PREFIX)
    app.include_router(users.router, prefix=API_PREFIX)

    @app.get("/health", response_model=ApiResponse[dict[str, str]])
    async def health_check() -> ApiResponse[dict[str, str]]:
        return ApiResponse(data={"status": "ok"})

    return app
