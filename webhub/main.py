"""
FastAPI Production Application

Main entry point for the Nexus Web Hub API.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from webhub.config import get_settings
from webhub.config.logging import configure_logging
from webhub.database.connection import close_database, init_database
from webhub.serving.api.main import create_api_app
from webhub.serving.cache import close_redis, init_redis

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    An unreachable database raises ConfigurationError out of startup and the
    process exits. Redis is optional.
    """
    configure_logging()

    logger.info("Starting Nexus Web Hub API", environment=settings.app_env, version=settings.version)

    await init_database()
    await init_redis()

    yield

    logger.info("Shutting down...")
    await close_redis()
    await close_database()


app = create_api_app(lifespan=lifespan)


@app.get("/api/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": "Nexus Web Hub API",
        "version": settings.version,
        "environment": settings.app_env,
        "documentation": "/docs",
    }


def run() -> None:
    """Console entry point: serve the API with Uvicorn."""
    import uvicorn
    uvicorn.run("webhub.main:app", host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
