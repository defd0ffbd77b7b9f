"""
FastAPI Production Application

Main entry point for the Academy Analytics API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from academy_analytics.config import get_settings
from academy_analytics.config.logging import configure_logging
from academy_analytics.database.connection import (
    close_database,
    get_session_factory,
    init_database,
)
from academy_analytics.serving.api import create_api_app
from academy_analytics.serving.cache import response_cache
from academy_analytics.warehouse import PresentTrialSource, RollupEngine, probe_trial_source

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    logger.info("Starting Academy Analytics API", version=settings.version, environment=settings.app_env)

    engine = await init_database()

    if settings.analytics.probe_trial_source:
        trial_source = await probe_trial_source(engine)
    else:
        trial_source = PresentTrialSource()

    app.state.rollup_engine = RollupEngine(get_session_factory(), trial_source)
    logger.info(
        "Rollup engine ready",
        trial_source=type(trial_source).__name__,
        max_concurrent_reads=app.state.rollup_engine.max_concurrent_reads,
    )

    yield

    logger.info("Shutting down...")
    response_cache.clear()
    await close_database()


app = create_api_app(lifespan=lifespan)


@app.get("/api/v1/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": "Academy Analytics API",
        "version": settings.version,
        "environment": settings.app_env,
        "documentation": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
