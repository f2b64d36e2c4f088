"""Mirrio API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map MirrioError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager
    - Round scheduler runs in-process only when SCHEDULER_ENABLED is set

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Scheduler stopped before the engine is disposed so no tick runs on a closed pool
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mirrio.api.error_handlers import register_error_handlers
from mirrio.api.routes import admin, groups, health, rounds
from mirrio.config import get_settings
from mirrio.infrastructure.database import init_db
from mirrio.infrastructure.notifications import build_dispatcher
from mirrio.infrastructure.observability import setup_logging
from mirrio.services.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.scheduler_enabled:
        start_scheduler(manager.session, build_dispatcher(settings), settings)
    logger.info("Mirrio API started")
    yield
    logger.info("Mirrio API shutting down")
    await stop_scheduler()
    await manager.dispose()


app = FastAPI(title="Mirrio API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(groups.router)
app.include_router(rounds.router)
app.include_router(admin.router)

register_error_handlers(app)
