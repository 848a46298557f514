"""
Taskaway scheduler - Main Application Entry Point

Recurring task generation and auto-close sweeps behind a small ops API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from taskaway import __version__
from taskaway.core.config import get_settings
from taskaway.core.logger import setup_logger

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    logger.info(f"Starting Taskaway scheduler in {settings.ENVIRONMENT} mode...")

    from taskaway.infrastructure.local.database import dispose_db, init_db
    from taskaway.infrastructure.local.task_repository import SqliteTaskRepository
    from taskaway.services.composition import build_scheduler_services

    await init_db()

    services = build_scheduler_services(settings, task_repo=SqliteTaskRepository())
    app.state.scheduler_services = services

    # Only run the timer outside the test environment
    if settings.SCHEDULER_ENABLED and not settings.is_test:
        await services.driver.start()
    else:
        logger.info("Background scheduler disabled")

    yield

    # Shutdown
    logger.info("Shutting down Taskaway scheduler...")
    await services.driver.stop()
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Taskaway Scheduler",
        description="Recurring task generation and auto-close sweeps",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # Include routers
    from taskaway.api import scheduler

    app.include_router(scheduler.router, prefix="/api/scheduler", tags=["scheduler"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": __version__,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
