"""
LinguaCards - FastAPI Application
Main application entry point with background tasks and route configuration
"""
import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from linguacards import models  # noqa: F401  (registers tables on Base.metadata)
from linguacards.api.v1 import api_router
from linguacards.core.config import settings
from linguacards.core.database import init_db
from linguacards.review.registry import session_registry
from linguacards.services.reminders import LoggingReminderDispatcher, reminder_loop

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    await init_db()
    logger.info("Database tables initialized")

    tasks = [asyncio.create_task(session_registry.sweep_forever())]
    if settings.REMINDERS_ENABLED:
        dispatcher = getattr(app.state, "reminder_dispatcher", None) or LoggingReminderDispatcher()
        tasks.append(asyncio.create_task(reminder_loop(dispatcher)))
        logger.info("Reminder loop started")

    yield

    # Shutdown
    for task in tasks:
        task.cancel()
    for task in tasks:
        with suppress(asyncio.CancelledError):
            await task
    logger.info("Background tasks stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Spaced-repetition review core for vocabulary flashcards",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routes
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "linguacards.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
