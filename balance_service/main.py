"""Balance Service API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map LedgerError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Session manager created on startup, stored on app.state, disposed on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - app.state over a module-level manager: no global mutable state; tests put
      their own manager on app.state
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from balance_service.api.error_handlers import register_error_handlers
from balance_service.api.routes import balances, health, holds, transfers
from balance_service.config import get_settings
from balance_service.infrastructure.database import DatabaseSessionManager
from balance_service.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    app.state.db_manager = DatabaseSessionManager(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout_seconds=settings.database_pool_timeout_seconds,
        isolation_level=settings.database_isolation_level,
        session_timeout_seconds=settings.session_timeout_seconds,
        lock_timeout_ms=settings.lock_timeout_ms,
        acquire_retries=settings.database_acquire_retries,
        retry_base_delay_ms=settings.database_retry_base_delay_ms,
        retry_max_delay_ms=settings.database_retry_max_delay_ms,
    )
    logger.info("Balance service started")
    yield
    await app.state.db_manager.dispose()
    logger.info("Balance service shutting down")


app = FastAPI(
    title="Balance Service API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(balances.router)
app.include_router(holds.router)
app.include_router(transfers.router)

register_error_handlers(app)
