"""
FastAPI Application Entry Point

This module initializes the FastAPI application with:
- CORS configuration
- Middleware setup
- Route registration
- Realtime connection registry
- Health check endpoints
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from zord.core.config import settings
from zord.core.exceptions import (
    AccessDeniedError,
    AuthorizationContextMissingError,
    NotFoundError,
    ValidationFailedError,
    ZordError,
)
from zord.db.database import check_db_connection, close_db_engine
from zord.db.redis import (
    check_redis_connection,
    get_redis_pool,
    close_redis_pool,
)
from zord.middleware.logging import LoggingMiddleware
from zord.services.websocket_manager import build_connection_manager
from zord.api.v1.router import api_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# ============================================================
# Application Lifespan Events
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Startup:
    - Check database connection
    - Initialize Redis connection pool (redis realtime backend only)

    Shutdown:
    - Close live WebSockets and wait for in-flight pushes
    - Close Redis and database connections
    """
    # ========== STARTUP ==========
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Realtime backend: {settings.REALTIME_BACKEND}")

    # Check database connection on startup
    try:
        db_healthy = await check_db_connection()
        if db_healthy:
            logger.info("Database connection established successfully")
        else:
            logger.warning("Database connection check failed")
    except Exception as e:
        logger.error(f"Database connection error on startup: {e}")

    if settings.REALTIME_BACKEND == "redis":
        try:
            get_redis_pool()  # Creates the pool (singleton)
            redis_healthy = await check_redis_connection()
            if redis_healthy:
                logger.info("Redis connection established successfully")
            else:
                logger.warning("Redis connection check failed - pushes fall back to local delivery")
        except Exception as e:
            logger.error(f"Redis connection error on startup: {e}")

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    logger.info(f"Shutting down {settings.PROJECT_NAME}...")

    await app.state.connection_manager.shutdown()
    await close_redis_pool()
    await close_db_engine()

    logger.info("Shutdown complete")


# ============================================================
# Create FastAPI Application
# ============================================================
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    College Social Network API

    Features:
    - User Authentication (JWT)
    - Visibility-scoped feed (everyone / collegeOnly / studentsOnly)
    - Posts, likes, comments and hashtags
    - Follows and profile search
    - Notifications with realtime WebSocket delivery
    """,
    version="1.0.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# One registry per process; dependencies read it from app.state
app.state.connection_manager = build_connection_manager()

# ----------------------------------------------------
# Middleware Configuration
# ----------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)

if settings.DEBUG:
    app.add_middleware(LoggingMiddleware)


# ----------------------------------------------------
# Health Check Endpoints
# ----------------------------------------------------
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.PROJECT_NAME,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs" if settings.DEBUG else "disabled"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for monitoring.

    Checks:
    - Database connectivity
    - Redis connectivity (redis realtime backend only)
    """
    try:
        db_healthy = await check_db_connection()
        result = {
            "status": "healthy" if db_healthy else "degraded",
            "database": "connected" if db_healthy else "disconnected",
        }

        if settings.REALTIME_BACKEND == "redis":
            redis_healthy = await check_redis_connection()
            result["redis"] = "connected" if redis_healthy else "disconnected"
            if not redis_healthy:
                result["status"] = "degraded"

        return result
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error": str(e)
            }
        )

# ============================================================
# Include API Router
# ============================================================
app.include_router(
    api_router,
    prefix=settings.API_V1_PREFIX
)


# ----------------------------------------------------
# Exception Handlers
# ----------------------------------------------------
_ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AccessDeniedError: status.HTTP_403_FORBIDDEN,
    AuthorizationContextMissingError: status.HTTP_401_UNAUTHORIZED,
    ValidationFailedError: status.HTTP_400_BAD_REQUEST,
}


@app.exception_handler(ZordError)
async def service_error_handler(request: Request, exc: ZordError):
    """Translate service-layer errors to HTTP responses."""
    status_code = next(
        (code for error_type, code in _ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.error(f"Unhandled service error on {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    """Handle 500 errors."""
    logger.error(f"Internal server error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )
