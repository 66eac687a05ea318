"""
Campus Events API - Main Application Entry Point

Event registration for student clubs:
- Events move through an approval workflow before students can register
- First-come-first-served admission with capacity, deadlines and waitlists
- Registrations never overbook, even under concurrent requests
- Redis caching of the event catalogue, structured logging, Prometheus metrics
"""

import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campus_events.core.config import get_settings
from campus_events.core.logging import setup_logging, get_logger
from campus_events.core.metrics import metrics_endpoint
from campus_events.api.router import api_router
from campus_events.api.middleware import RequestLoggingMiddleware
from campus_events.db.session import AsyncSessionLocal
from campus_events.infrastructure.redis_client import get_redis, close_redis
from campus_events.services import lifecycle_service
from campus_events.services.cache_service import get_cache_stats, invalidate_event_cache

settings = get_settings()
logger = get_logger(__name__)


async def run_completion_sweep() -> int:
    """One pass of the completion sweep in its own session."""
    async with AsyncSessionLocal() as db:
        completed = await lifecycle_service.complete_past_events(db)
        await db.commit()
    if completed:
        await invalidate_event_cache()
    return completed


async def _completion_sweep_loop(interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await run_completion_sweep()
        except Exception:
            # Keep the loop alive; the next pass retries
            logger.exception("completion_sweep_failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        registration_lock=settings.REGISTRATION_LOCK,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    sweeper = None
    if settings.COMPLETION_SWEEP_INTERVAL_SECONDS > 0:
        sweeper = asyncio.create_task(_completion_sweep_loop(settings.COMPLETION_SWEEP_INTERVAL_SECONDS))

    yield

    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Campus club event registration with an approval workflow and FCFS admission",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
