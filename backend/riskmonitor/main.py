"""
Trade Risk Monitor - FastAPI Application

Main entry point for the backend API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from riskmonitor.core.config import settings
from riskmonitor.core.logging import setup_logging
from riskmonitor.api.v1 import router as api_v1_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    # Initialize database
    from riskmonitor.db.database import init_db, close_db
    await init_db()
    logger.info("Database initialized")

    # Initialize Redis (advisory evaluation locks)
    from riskmonitor.services.cache.redis_client import init_redis, close_redis
    redis_client = await init_redis()
    if redis_client:
        logger.info("Redis cache connected")
    else:
        logger.info("Redis unavailable - using in-memory locks")

    # Start periodic evaluation
    from riskmonitor.services.evaluation.scheduler import start_periodic_evaluator, stop_periodic_evaluator
    if settings.periodic_evaluation_enabled:
        periodic = await start_periodic_evaluator()
        logger.info("Periodic evaluator started")
    else:
        periodic = None
        logger.info("Periodic evaluator disabled (periodic_evaluation_enabled=false)")

    yield

    # Shutdown
    logger.info("Shutting down...")
    if periodic:
        await stop_periodic_evaluator()
    await close_redis()
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Trade Risk Monitor API

    ## Architecture
    - **Rule Strategies**: Duration, Volume and Open Trades checks
    - **Duplicate Guard**: One incident per rule, account and trade per cooldown
    - **Incident Writer**: Serialized incident creation with SOFT accumulation
    - **Action Executor**: Email / Slack (logged), account and trading suspension

    ## Triggers
    - Trade closed (event)
    - Manual evaluation of an account, a trade or all active accounts
    - Periodic batch evaluation
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Trade Risk Monitor API",
        "docs": "/docs",
        "health": "/health",
    }
