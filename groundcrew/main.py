"""
Main FastAPI application entry point.
Initializes the API, document store, live feeds, aggregation and monitoring.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from groundcrew.api.v1.router import api_router
from groundcrew.core.config import get_settings
from groundcrew.core.logging import setup_logging
from groundcrew.core.metrics import PrometheusMiddleware
from groundcrew.database import AsyncSessionLocal, close_db, init_db
from groundcrew.exceptions import (
    AuthorizationError,
    ConnectivityError,
    GroundCrewException,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from groundcrew.services.orchestration.progress_aggregator import ProgressAggregator
from groundcrew.services.orchestration.scheduler import AggregationScheduler
from groundcrew.services.realtime.redis_relay import RedisChangeRelay
from groundcrew.services.realtime.subscription_channel import SubscriptionChannel
from groundcrew.services.store.document_store import DocumentStore

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

ERROR_STATUS_CODES = {
    AuthorizationError: 403,
    InvalidTransitionError: 409,
    ValidationError: 422,
    NotFoundError: 404,
    ConnectivityError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("Starting ground crew sync service...")

    logger.info("Initializing database...")
    await init_db()

    store = DocumentStore(AsyncSessionLocal)
    channel = SubscriptionChannel(store)
    app.state.store = store
    app.state.channel = channel
    app.state.relay = None
    app.state.aggregator = None
    app.state.scheduler = None

    if settings.ENABLE_CHANGE_RELAY:
        logger.info("Connecting change relay...")
        app.state.relay = RedisChangeRelay(store, channel)
        await app.state.relay.connect()

    if settings.ENABLE_AGGREGATOR:
        logger.info("Starting progress aggregator...")
        app.state.aggregator = ProgressAggregator(store, channel)
        await app.state.aggregator.start()
        app.state.scheduler = AggregationScheduler(app.state.aggregator)
        await app.state.scheduler.start()

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if app.state.scheduler:
        await app.state.scheduler.stop()
    if app.state.aggregator:
        await app.state.aggregator.stop()
    if app.state.relay:
        await app.state.relay.disconnect()
    await channel.close()
    await close_db()
    logger.info("Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Ground Crew Sync API",
    description="Turnaround checklists, delay reporting and live progress for ground crews",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus metrics middleware
if settings.ENABLE_METRICS:
    app.add_middleware(PrometheusMiddleware)


@app.exception_handler(GroundCrewException)
async def groundcrew_exception_handler(request: Request, exc: GroundCrewException):
    """Map domain errors to status codes; the detail is the user-facing message"""
    status_code = 500
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            status_code = ERROR_STATUS_CODES[error_type]
            break

    if status_code == 500:
        log = logger.error
    elif status_code == 503:
        log = logger.warning
    else:
        log = logger.info
    log(
        f"{exc.code}: {exc.message}",
        extra={"path": request.url.path, "status_code": status_code}
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.user_message}
    )


# Include API router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)

# Prometheus metrics endpoint
if settings.ENABLE_METRICS:
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Ground Crew Sync API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint"""
    scheduler = getattr(request.app.state, "scheduler", None)
    channel = getattr(request.app.state, "channel", None)
    return {
        "status": "healthy",
        "scheduler": scheduler.get_status()["scheduler_running"] if scheduler else False,
        "next_sweep": scheduler.get_next_run_time() if scheduler else None,
        "subscriptions": channel.subscription_count if channel else 0,
        "change_relay": getattr(request.app.state, "relay", None) is not None,
    }
