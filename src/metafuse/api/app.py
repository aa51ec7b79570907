"""FastAPI application for the MetaFuse lookup service."""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from metafuse import __version__
from metafuse.api import routes
from metafuse.api.middleware import RequestLoggingMiddleware
from metafuse.config import Config
from metafuse.core.aggregator import MetadataAggregator, build_aggregator
from metafuse.utils.logger import get_logger

logger = get_logger(__name__)


class AppState:
    """Application state container."""

    def __init__(self, config: Config, aggregator: Optional[MetadataAggregator] = None):
        self.config = config
        self.start_time = time.time()
        self.aggregator = aggregator
        # Only an aggregator built by the lifespan is closed by it
        self.owns_aggregator = aggregator is None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    app_state = app.state.metafuse
    logger.info("Starting MetaFuse service", version=__version__)

    if app_state.aggregator is None:
        app_state.aggregator = build_aggregator(app_state.config)

    yield

    logger.info("Shutting down MetaFuse service")
    if app_state.owns_aggregator:
        await app_state.aggregator.aclose()
    logger.info("Shutdown complete")


def create_app(config: Config, aggregator: Optional[MetadataAggregator] = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Application configuration
        aggregator: Pre-built aggregator (built from config at startup if None)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="MetaFuse",
        description="Multi-provider music metadata aggregation",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.metafuse = AppState(config, aggregator)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report missing or malformed query parameters."""
        logger.warning(
            "Request validation failed",
            path=request.url.path,
            method=request.method,
            errors=exc.errors(),
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "status": "error",
                "message": "Invalid request parameters",
                "errors": exc.errors(),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch all unhandled exceptions."""
        logger.error(
            "Unhandled exception in request handler",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "message": "Internal server error"},
        )

    app.include_router(routes.router)

    logger.info("FastAPI application created", version=__version__, api_port=config.api.port)
    return app
