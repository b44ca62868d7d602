"""
FastAPI application with proper database lifecycle management.

FastAPI maintains ONE event loop for the server's lifetime.  The database
pool and the Redis launch store are initialized in the lifespan so all
connections are created in that loop.
"""

from dotenv import load_dotenv

# Load .env file before any other imports that might need env vars
load_dotenv()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.database import close_database, init_database
from api.errors import register_error_handlers
from api.lti.routes import router as lti_router
from api.lti.storage import init_lti_storage
from api.settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    - startup: Initialize database pool and launch storage IN the event loop
    - shutdown: Close database connections cleanly
    """
    settings = get_settings()
    await init_database()
    logger.info("Database pool initialized in event loop")

    if settings.redis_url:
        init_lti_storage(settings.redis_url)
    else:
        logger.warning("LMS_REDIS_URL not set; launches and sessions are disabled")

    yield

    await close_database()
    logger.info("Database connections closed")


def get_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title="LMS LTI API",
        description="LTI 1.3 launch orchestration for asset processors and EULAs",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(lti_router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


# Create the app instance
app = get_app()
