"""
Studio Class Booking API - Main Application Entry Point

Admission control for class sessions:
- Per-session atomic admission (confirm or waitlist) under concurrent requests
- FIFO waitlist with gap-free positions and promotion on cancellation
- Structured logging with request correlation
- Prometheus metrics for admission outcomes and slot lock contention
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studio_booking.api.errors import register_exception_handlers
from studio_booking.api.middleware import RequestLoggingMiddleware
from studio_booking.api.router import api_router
from studio_booking.core.config import get_settings
from studio_booking.core.logging import get_logger, setup_logging
from studio_booking.core.metrics import metrics_endpoint
from studio_booking.infrastructure.redis_client import close_redis, redis_status
from studio_booking.services.lock_factory import get_slot_lock

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    slot_lock = get_slot_lock()
    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        lock_backend=slot_lock.backend,
        lock_timeout_s=settings.ADMISSION_LOCK_TIMEOUT_SECONDS,
    )

    yield

    await slot_lock.close()
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Class-session booking with capacity-safe admission and a FIFO waitlist",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Routes
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "admission_lock": get_slot_lock().backend,
        "redis": await redis_status(),
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
