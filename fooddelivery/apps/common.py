"""
Service Application Builder

Every service gets the same skeleton: startup banner, its own database
(if it owns one), CORS, JSON error handlers and ``GET /health``. Service
modules add their routers and any extra resources on top.
"""

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime
from typing import AsyncContextManager, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from fooddelivery.core.config import Settings
from fooddelivery.core.handlers import register_exception_handlers
from fooddelivery.database import Database
from fooddelivery.schemas import HealthResponse

logger = logging.getLogger(__name__)

ResourceFactory = Callable[[FastAPI], AsyncContextManager[None]]


def create_service_app(
    *,
    service_name: str,
    description: str,
    settings: Settings,
    database_url: Optional[str] = None,
    resources: Optional[ResourceFactory] = None,
) -> FastAPI:
    """
    Build the FastAPI application for one service.

    Args:
        service_name: Name shown in logs, docs and /health
        description: OpenAPI description
        settings: Settings for this process
        database_url: Database owned by the service, if any
        resources: Async context manager factory entered after the database
            is ready and exited before it is disposed
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application startup and shutdown events.
        """
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {service_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Environment: {settings.env_mode.value}")
        logger.info(f"   Debug: {settings.debug}")
        logger.info("=" * 60)

        problems = settings.validate_production_config()
        if problems:
            logger.warning(f"⚠️ Development values in {settings.env_mode.value} config: {problems}")

        async with AsyncExitStack() as stack:
            if database_url:
                database = Database(
                    database_url,
                    echo=settings.database_echo,
                    pool_size=settings.db_pool_size,
                    max_overflow=settings.db_max_overflow,
                )
                stack.push_async_callback(database.dispose)
                await database.init()
                app.state.database = database
                logger.info("✅ Database initialized")

            if resources is not None:
                await stack.enter_async_context(resources(app))

            logger.info(f"✅ {service_name} ready!")
            yield  # Application runs

            logger.info("Shutting down...")

        logger.info("✅ Cleanup complete")

    app = FastAPI(
        title=f"{settings.app_name} - {service_name}",
        description=description,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.database = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["Health"],
        summary="Service Health Check",
    )
    async def health_check(request: Request) -> HealthResponse:
        """Verify the service and its database are operational."""
        database: Optional[Database] = request.app.state.database

        db_status = "not configured"
        if database is not None:
            db_status = "healthy"
            try:
                async with database.session() as session:
                    await session.execute(text("SELECT 1"))
            except Exception as e:
                db_status = f"unhealthy: {str(e)}"
                logger.error(f"Database health check failed: {e}")

        return HealthResponse(
            status="operational" if db_status in ("healthy", "not configured") else "degraded",
            service=service_name,
            database=db_status,
            timestamp=datetime.now(),
        )

    return app
