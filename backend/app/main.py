"""
Performer Booking API - Main Application Entry Point

An events marketplace backend:
- Enquiry -> booking lifecycle with Stripe deposits, balances and refunds
- Stripe Connect onboarding and performer payouts
- Redis caching for search and a Redis fixed-window rate limiter
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.core.metrics import metrics_endpoint
from app.db.session import get_db
from app.api.router import api_router
from app.api.middleware import RateLimitMiddleware, RequestLoggingMiddleware
from app.services.cache_service import get_redis, close_redis, get_cache_stats

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

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache or rate limiting")

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Marketplace API for booking live performers",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLoggingMiddleware)
# Added last so it wraps everything, including 429s
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check for Docker and load balancers. 503 when the database is unreachable."""
    try:
        await db.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        get_logger(__name__).error("health_check_database_error", error=str(e))
        database = "unavailable"

    body = {
        "status": "healthy" if database == "connected" else "unhealthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "cache": await get_cache_stats(),
    }
    return JSONResponse(status_code=200 if database == "connected" else 503, content=body)


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }


@app.get(settings.API_PREFIX, tags=["Root"])
async def api_index():
    prefix = settings.API_PREFIX
    return {
        "version": settings.APP_VERSION,
        "endpoints": {
            "auth": f"{prefix}/auth",
            "users": f"{prefix}/users",
            "categories": f"{prefix}/categories",
            "performers": f"{prefix}/performers",
            "enquiries": f"{prefix}/enquiries",
            "bookings": f"{prefix}/bookings",
            "payments": f"{prefix}/payments",
            "refunds": f"{prefix}/refunds",
            "webhooks": f"{prefix}/webhooks",
            "messages": f"{prefix}/messages",
            "reviews": f"{prefix}/reviews",
            "testimonials": f"{prefix}/testimonials",
        },
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()
