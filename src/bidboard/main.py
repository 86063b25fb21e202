"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bidboard.config import settings
from bidboard.db.engine import create_db_engine, create_session_factory
from bidboard.events.webhook_config import WebhookSubscription, webhook_registry
from bidboard.logging_config import configure_logging
from bidboard.services.kanban.move_guard import MoveGuard

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=settings.json_logs and not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)
    session_factory = create_session_factory(engine)

    # Auto-create tables for SQLite (local dev, no migrations)
    if "sqlite" in db_url:
        from bidboard.db.base import Base
        import bidboard.db.models  # noqa: F401 register all ORM models

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

        # Seed default boards (idempotent)
        from bidboard.services.kanban.templates import seed_default_boards

        async with session_factory() as seed_session:
            created = await seed_default_boards(seed_session, settings.local_organization_id)
            await seed_session.commit()
            if created:
                logger.info("Seeded %d default boards", len(created))

    app.state.db_engine = engine
    app.state.db_session_factory = session_factory
    app.state.move_guard = MoveGuard()

    for url in settings.webhook_urls:
        webhook_registry.register(WebhookSubscription(url=url, secret=settings.webhook_secret))
    if settings.webhook_urls:
        logger.info("Registered %d webhook subscribers", len(settings.webhook_urls))

    logger.info("BidBoard API started (db=%s)", "sqlite" if "sqlite" in db_url else "postgresql")
    yield

    # Shutdown
    webhook_registry.clear()
    await engine.dispose()
    logger.info("BidBoard API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="BidBoard API",
        version="1.0.0",
        description="Proposal workflow boards: column assignment, gated moves and approvals.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from bidboard.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    # Register error handlers
    from bidboard.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    # Import and mount routers
    from bidboard.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
