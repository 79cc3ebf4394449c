"""
HRMS Leave API

Leave balance, application and approval backend serving the legacy web and
mobile clients.

Middleware order: CORS → CorrelationId → Logging → RateLimiting
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Union

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

# Core imports (leaf modules - safe for circular imports)
import hrms.models  # Force model registration with SQLAlchemy
from hrms.core.config import settings
from hrms.core.exceptions import AppException, DependencyFailure
from hrms.core.schemas import ErrorInfo, ErrorResponse
from hrms.core.logging import setup_logging
from hrms.core.limiter import limiter
from hrms.core.middleware import CorrelationIdMiddleware, LoggingMiddleware
from hrms.database import init_db, SessionLocal
from hrms.core.init_system import init_system_data
from hrms.routers.api_router import api_router

# ============================================================================
# LOGGING SETUP
# ============================================================================
setup_logging()
logger = logging.getLogger(__name__)


# ============================================================================
# LIFESPAN MANAGEMENT
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle manager.
    - Startup: create tables, seed default leave configuration
    - Shutdown: nothing to release beyond the engine pool
    """
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")

    try:
        init_db()
        logger.info("✓ Database initialized successfully")

        init_system_data()
        logger.info("✓ System initialization check complete")
    except Exception as e:
        logger.error(f"✗ Database initialization failed: {e}")
        raise

    yield

    logger.info("Gracefully shutting down...")


# ============================================================================
# FASTAPI INSTANCE
# ============================================================================
app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Leave balances, applications and approvals",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# ============================================================================
# RATE LIMITER
# ============================================================================
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# MIDDLEWARE STACK
# Add in REVERSE order (last added runs first)
# ============================================================================
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[settings.request_id_header, "X-Process-Time"],
)


# ============================================================================
# EXCEPTION HANDLERS
# Every failure is rendered as ErrorResponse: {"success": false, "errors": [...]}
# ============================================================================
def error_response(status_code: int, *errors: ErrorInfo) -> JSONResponse:
    body = ErrorResponse(errors=list(errors))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed fields (422), each error naming its field."""
    errors = [
        ErrorInfo(field=str(error["loc"][-1]) if error["loc"] else "unknown", msg=error["msg"])
        for error in exc.errors()
    ]
    logger.warning(f"Validation error on {request.url.path}: {[e.field for e in errors]}")
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, *errors)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Domain errors carry their own status code and error code."""
    logger.warning(f"AppException: {exc.message}", extra={"code": exc.error_code})
    field = (exc.details or {}).get("field")
    return error_response(exc.status_code, ErrorInfo(msg=exc.message, code=exc.error_code, field=field))


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.url.path}: {exc}", exc_info=True)
    failure = DependencyFailure("Database unavailable. Please retry.")
    return error_response(failure.status_code, ErrorInfo(msg=failure.message, code=failure.error_code))


@app.exception_handler(StarletteHTTPException)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: Union[HTTPException, StarletteHTTPException]):
    msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(exc.status_code, ErrorInfo(msg=msg))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Fallback for unhandled server errors; details stay in the log."""
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return error_response(500, ErrorInfo(msg="An unexpected server error occurred."))


# ============================================================================
# ROUTER INCLUSION
# ============================================================================
app.include_router(api_router, prefix=settings.api_prefix)


# ============================================================================
# OPERATIONAL ENDPOINTS (at root level)
# ============================================================================
@app.get("/", tags=["Health"])
def root():
    """API root endpoint."""
    return {
        "message": settings.app_name,
        "version": settings.version,
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
def health_check():
    """Liveness probe for load balancers and orchestrators."""
    return {
        "status": "up",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment,
    }


@app.get("/readiness", tags=["Health"])
def readiness_check():
    """Readiness probe - verifies database connectivity."""
    try:
        with SessionLocal() as session:
            session.execute(text("SELECT 1"))
        return {
            "status": "ready",
            "components": {"database": "connected"},
        }
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=503, detail="Service not ready")
