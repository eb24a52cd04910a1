"""Vacations: FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from vacations.common.exceptions import register_exception_handlers
from vacations.common.rate_limit import limiter, rate_limit_exceeded_handler
from vacations.common.responses import ok
from vacations.config import settings
from vacations.holidays.router import router as holidays_router
from vacations.leave.router import router as leave_router
from vacations.notifications.events import event_bus
from vacations.notifications.router import router as notifications_router
from vacations.notifications.slack import SlackNotifier

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    # Startup
    configure_logging()
    notifier = SlackNotifier()
    notifier.register(event_bus)
    if not notifier.enabled:
        logger.info("SLACK_WEBHOOK_URL not set; Slack notifications disabled")
    yield
    # Shutdown
    notifier.unregister(event_bus)
    await notifier.drain()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Vacations",
        description="Leave requests, PTO balances and public holiday calendars",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807 inside the failure envelope)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return ok({
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        })

    # Register routers
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(holidays_router, prefix="/api/v1/holidays", tags=["holidays"])
    app.include_router(
        notifications_router, prefix="/api/v1/notifications", tags=["notifications"],
    )

    return app


app = create_app()
