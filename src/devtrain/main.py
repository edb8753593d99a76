"""FastAPI application factory."""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from devtrain.auth.router import router as auth_router
from devtrain.config import get_settings
from devtrain.dashboard.router import router as dashboard_router
from devtrain.database import close_db, init_db
from devtrain.health.router import router as health_router
from devtrain.middleware import setup_middleware
from devtrain.profiles.router import router as profile_router
from devtrain.ratelimit import init_rate_limiter, sweep_forever
from devtrain.redis_client import close_redis, init_redis
from devtrain.topics.router import router as topics_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    redis = await init_redis(settings.redis_url) if settings.redis_url else None
    limiter = init_rate_limiter(settings, redis)

    sweep_task = asyncio.create_task(sweep_forever(limiter, settings.rate_limit_sweep_interval_seconds))
    logger.info("app_started", environment=settings.environment, version=settings.app_version)

    yield

    sweep_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweep_task

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="DevTrain API",
        description="Personalized learning topics for developers returning to the craft",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(topics_router)
    app.include_router(dashboard_router)

    return app


app = create_app()
