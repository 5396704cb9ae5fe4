"""FastAPI Application Entry Point"""

import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.database import init_db, close_db
from app.core.logging import setup_logging, get_logger
from app.core.middleware import (
    RequestIDMiddleware,
    RequestTimingMiddleware,
    SecurityHeadersMiddleware
)
from app.core.scheduler import create_scheduler
from app.api.v1.router import api_router
from app.schemas.responses import ErrorDetail, ErrorResponse
from app.services.oss import (
    ConfigMissing,
    DecodeError,
    FileTooLarge,
    MalformedURL,
    NotFound,
    StorageError,
    StorageTimeout,
    StoreOperationError,
    UnsupportedFormat,
    get_oss_service,
)
from app.services.oss.client import verify_bucket

# Setup logging
setup_logging()
logger = get_logger(__name__)


# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    enabled=settings.RATE_LIMIT_ENABLED,
)

# Most specific first; the first isinstance match wins
STORAGE_ERROR_STATUS = (
    (ConfigMissing, status.HTTP_503_SERVICE_UNAVAILABLE, "STORAGE_NOT_CONFIGURED"),
    (UnsupportedFormat, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, "UNSUPPORTED_FORMAT"),
    (DecodeError, status.HTTP_422_UNPROCESSABLE_ENTITY, "DECODE_ERROR"),
    (FileTooLarge, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "FILE_TOO_LARGE"),
    (MalformedURL, status.HTTP_400_BAD_REQUEST, "MALFORMED_URL"),
    (NotFound, status.HTTP_404_NOT_FOUND, "OBJECT_NOT_FOUND"),
    (StorageTimeout, status.HTTP_504_GATEWAY_TIMEOUT, "STORAGE_TIMEOUT"),
    (StoreOperationError, status.HTTP_502_BAD_GATEWAY, "STORAGE_ERROR"),
)


def storage_error_status(exc: StorageError):
    """(http status, error code) for a storage error"""
    for error_cls, status_code, code in STORAGE_ERROR_STATUS:
        if isinstance(exc, error_cls):
            return status_code, code
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "STORAGE_ERROR"


async def check_storage() -> None:
    try:
        store = get_oss_service()
    except ConfigMissing as e:
        logger.warning("Object storage not configured", extra={"error": str(e)})
        return
    await asyncio.to_thread(verify_bucket, store.client, store.bucket)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting application", extra={"environment": settings.ENVIRONMENT})

    # Initialize database (for development only)
    if settings.is_development:
        await init_db()
        logger.info("Database initialized")

    await check_storage()

    scheduler = None
    if settings.REAPER_ENABLED:
        scheduler = create_scheduler()
        scheduler.start()
        logger.info("Reaper scheduler started", extra={"schedule": settings.CRON_SCHEDULE})

    yield

    # Shutdown
    logger.info("Shutting down application")
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Masjid asset storage: uploads, WebP images, trash and retention",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiting state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.ALLOWED_METHODS,
    allow_headers=[settings.ALLOWED_HEADERS],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)

# Custom middleware
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(RequestIDMiddleware)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# Health check endpoints
@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


# Exception handlers
@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    """Map storage errors to the error envelope"""
    status_code, code = storage_error_status(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Storage error",
        extra={
            "path": request.url.path,
            "code": code,
            "error": str(exc),
            "correlation_id": getattr(request.state, "request_id", None),
        }
    )
    body = ErrorResponse(error=ErrorDetail(code=code, message=str(exc)))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    logger.warning(
        "Validation error",
        extra={
            "path": request.url.path,
            "errors": exc.errors(),
            "correlation_id": getattr(request.state, "request_id", None),
        }
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "correlation_id": getattr(request.state, "request_id", None),
        },
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error"
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
