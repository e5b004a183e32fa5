"""Main application entry point."""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.routes import api_router, probe_router
from app.core.config import get_settings
from app.core.exceptions import (
    AppError,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)
from app.db.seed import populate_database
from app.db.session import AsyncSessionLocal, close_db, init_db

# ─────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────
settings = get_settings()

# Set log level based on environment
log_level = logging.DEBUG if settings.debug else logging.INFO

logging.basicConfig(
    level=log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("koans")

# Suppress verbose SQLAlchemy logs in production
if not settings.debug:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ─────────────────────────────────────────────────────────────
# Global exception handler - logs full traceback
# ─────────────────────────────────────────────────────────────
async def catch_exceptions_middleware(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error("=" * 60)
        logger.error(f"500 ERROR on {request.method} {request.url.path}")
        logger.error(f"Exception: {type(exc).__name__}: {exc}")
        logger.error("Full traceback:")
        logger.error(traceback.format_exc())
        logger.error("=" * 60)
        # Never leak internals to the client
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )


# ─────────────────────────────────────────────────────────────
# Domain error → HTTP status
# ─────────────────────────────────────────────────────────────
ERROR_STATUS = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
]


async def app_error_handler(request: Request, exc: AppError):
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return JSONResponse(status_code=status_code, content={"detail": exc.message})

    if isinstance(exc, InternalError):
        logger.error(f"Invariant violated on {request.method} {request.url.path}: {exc}")
    else:
        logger.error(f"Unmapped {type(exc).__name__} on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Bad request on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Bad Request"},
    )


# ─────────────────────────────────────────────────────────────
# Lifespan: Startup + Shutdown
# ─────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    # ─── Startup ───
    logger.info(f"Starting up {settings.app_name} v{app.version}...")

    # Initialize DB tables (auto-creates if not using Alembic migrations)
    await init_db()

    if settings.seed_demo_data:
        async with AsyncSessionLocal() as db:
            await populate_database(db, settings.demo_activity_count)
            await db.commit()

    logger.info("Application startup complete")
    yield

    # ─── Shutdown ───
    logger.info("Shutting down application...")
    await close_db()
    logger.info("Database connections closed")


# ─────────────────────────────────────────────────────────────
# FastAPI App
# ─────────────────────────────────────────────────────────────
app = FastAPI(
    title=settings.app_name,
    description="Wellness activity catalog with per-user completion tracking",
    version="1.0.0",
    docs_url="/docs" if settings.development_mode else None,  # Hide docs in prod
    redoc_url="/redoc" if settings.development_mode else None,
    openapi_url="/openapi.json" if settings.development_mode else None,
    lifespan=lifespan,
    default_response_class=JSONResponse,
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)

# ─────────────────────────────────────────────────────────────
# Security Middleware
# ─────────────────────────────────────────────────────────────
app.add_middleware(BaseHTTPMiddleware, dispatch=catch_exceptions_middleware)

# Trusted hosts (prevent DNS rebinding, host header attacks)
app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.allowed_hosts_list,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=600,
)

# ─────────────────────────────────────────────────────────────
# Routers
# ─────────────────────────────────────────────────────────────
app.include_router(probe_router, tags=["Health"])
app.include_router(api_router, prefix="/api/v1")


# ─────────────────────────────────────────────────────────────
# Run with Uvicorn (only when running directly)
# ─────────────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.development_mode,
        log_level="debug" if settings.debug else "info",
    )
