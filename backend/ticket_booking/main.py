"""
Ticket Booking API - Main Application Entry Point

An event-ticket booking service:
- Fixed ticket inventory per event, concurrency-safe reservation
- Sold-out requests join a per-event FIFO waiting list
- Cancelled tickets go straight to the next waiting user
- Structured logging with request correlation, Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI

from ticket_booking.core.config import get_settings
from ticket_booking.core.logging import setup_logging, get_logger
from ticket_booking.core.metrics import metrics_endpoint
from ticket_booking.api.errors import register_exception_handlers
from ticket_booking.api.router import api_router
from ticket_booking.api.middleware import RequestLoggingMiddleware
from ticket_booking.db.session import dispose_engine
from ticket_booking.infrastructure.redis_client import close_redis
from ticket_booking.services.strategy_factory import build_orchestrator

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    if getattr(app.state, "orchestrator", None) is None:
        app.state.orchestrator = build_orchestrator(settings)

    yield

    await close_redis()
    await dispose_engine()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event ticket booking with a FIFO waiting list for sold-out events",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "store": settings.STORE_BACKEND,
        "waiting_list": settings.WAITLIST_BACKEND,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
