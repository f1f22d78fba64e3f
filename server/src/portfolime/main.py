"""FastAPI application entry point for Portfolime."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portfolime import __version__
from portfolime.api.auth import get_session_store
from portfolime.api.routes import get_directory, router
from portfolime.config import get_settings

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting Portfolime Server v{__version__}")
    settings = get_settings()
    logger.info(f"Debug mode: {settings.debug}")

    session = get_session_store()
    remove_presence = session.add_listener(get_directory().follow_session)
    session.subscribe()

    yield

    # Shutdown
    remove_presence()
    session.close()
    logger.info("Shutting down Portfolime Server")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Portfolime",
        description="Multi-tenant portfolio session and editing service",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routes
    app.include_router(router)

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "portfolime.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
