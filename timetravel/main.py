"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from timetravel.api.v2.endpoints import health
from timetravel.api.v2.router import api_router
from timetravel.core.config import Settings, settings
from timetravel.core.database import DatabaseClient
from timetravel.utils.logging import correlation_id_var, get_logger

LOGGER = get_logger(__name__, level=settings.log_level)


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        app_settings: Settings to build the app from, defaults to the environment

    Returns:
        FastAPI: Configured application
    """
    config = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        LOGGER.info(
            "Starting application",
            extra={
                "app_name": config.app_name,
                "version": config.app_version,
                "environment": config.environment,
            },
        )

        db_client = DatabaseClient.from_settings(config.database)
        await db_client.connect()
        if config.database.auto_migrate:
            await db_client.auto_migrate()
        app.state.db_client = db_client

        yield

        LOGGER.info("Shutting down application")
        await db_client.disconnect()

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="Versioned insured, employee and address records with point-in-time reads",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
        request.state.correlation_id = correlation_id
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID"],
    )

    app.include_router(api_router, prefix=config.api_v2_prefix)
    app.include_router(health.router, prefix="/health", tags=["Health"])

    @app.get(
        "/",
        response_model=RootResponse,
        tags=["Root"],
        summary="Root endpoint",
        description="Get basic information about the API",
        operation_id="get_public_root_metadata",
    )
    async def root() -> RootResponse:
        """Root endpoint.

        Returns:
            RootResponse: Basic API information
        """
        return RootResponse(
            message="Server is running",
            version=config.app_version,
            docs="/docs",
            health="/health",
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "timetravel.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
