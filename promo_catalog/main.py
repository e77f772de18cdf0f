"""
FastAPI Application

Main entry point for the Promotion Catalog API.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from promo_catalog.config import Settings, get_settings
from promo_catalog.config.logging import configure_logging
from promo_catalog.database.connection import QueryExecutor
from promo_catalog.engine import build_engine
from promo_catalog.serving.api import RequestLoggingMiddleware, register_exception_handlers
from promo_catalog.serving.api.routes import admin_router, catalog_router, health_router

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    executor: Optional[QueryExecutor] = None,
) -> FastAPI:
    """
    Create and configure the API application.

    Args:
        settings: Application settings (cached settings when omitted)
        executor: Store executor to use; built from settings when omitted.
            The lifespan connects it on start-up and closes it on shutdown.

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()
    executor = executor or QueryExecutor.from_settings(settings)
    engine = build_engine(executor, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        logger.info("Starting Promotion Catalog API", environment=settings.app_env)

        await executor.connect()
        if settings.database.create_schema:
            await executor.create_schema()

        yield

        logger.info("Shutting down...")
        await executor.close()

    app = FastAPI(
        title="Promotion Catalog API",
        description="Promotion metadata over denormalized, query-first tables",
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router, tags=["Health"])
    app.include_router(catalog_router, tags=["Catalog"])
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
