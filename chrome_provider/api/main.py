"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from chrome_provider import __version__
from chrome_provider.api.routes import router
from chrome_provider.browser.provider import BrowserProvider
from chrome_provider.config import settings
from chrome_provider.utils.logging import AccessLogMiddleware, get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


def create_app(provider: BrowserProvider | None = None) -> FastAPI:
    """Build the API around a provider; a fresh one is created when omitted."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown events."""
        logger.info("Starting Chrome provider API", version=__version__)
        app.state.provider = provider or BrowserProvider()

        yield

        logger.info("Shutting down...")
        await app.state.provider.close_all()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Chrome Provider API",
        description="Opens, drives and closes Chrome browsers over the DevTools protocol",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(AccessLogMiddleware)
    app.include_router(router)

    @app.get("/health")
    async def health_check() -> dict[str, str | int]:
        """Health check endpoint."""
        return {"status": "healthy", "open_browsers": app.state.provider.open_session_count}

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn."""
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)
