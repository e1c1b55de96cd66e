"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from orbit.achievements.router import router as achievements_router
from orbit.config import get_settings
from orbit.database import close_db, init_db
from orbit.health.router import router as health_router
from orbit.middleware import setup_middleware
from orbit.notifications.queue import close_notification_queue, init_notification_queue
from orbit.ranking.router import router as ranking_router
from orbit.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url, settings.db_pool_size, settings.db_max_overflow)
    await init_redis(settings.redis_url, settings.redis_max_connections)

    # Awards still commit without the queue; only notifications are skipped
    try:
        await init_notification_queue(settings.arq_redis_url)
    except Exception:
        logger.warning("Notification queue unavailable, notifications disabled", exc_info=True)

    yield

    await close_notification_queue()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Orbit Achievements API",
        description="Achievement awards, balances and student rankings",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(achievements_router)
    app.include_router(ranking_router)

    return app


app = create_app()
