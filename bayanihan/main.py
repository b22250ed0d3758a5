"""
Bayanihan Jobs API - FastAPI Application Entry Point.

Community job marketplace for barangay residents: post jobs, match
workers by skill and location, settle payment, track income goals.
"""
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from bayanihan.core.config import settings
from bayanihan.core.database import close_db, init_db
from bayanihan.core.exceptions import APIException
from bayanihan.core.logging import RequestIDMiddleware, get_logger, setup_logging
from bayanihan.core.rate_limit import limiter
from bayanihan.api.routes import api_router
from bayanihan.schemas.base import ErrorResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: logging and database setup, then teardown."""
    setup_logging()
    logger.info("starting_app", app_name=settings.app_name, env=settings.environment)
    await init_db()
    logger.info("database_initialized")

    yield

    await close_db()
    logger.info("shutting_down")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Community job marketplace for barangays",
    version=settings.app_version,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter

# Request ID correlation
app.add_middleware(RequestIDMiddleware)

# CORS with explicit methods and headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)


def _error(
    status_code: int,
    error: str,
    message: str,
    alert: Optional[str] = None,
    details: Optional[Any] = None,
) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, alert=alert or message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# Exception handlers
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Handle custom API exceptions."""
    logger.info("api_error", code=exc.code, status=exc.status_code, message=exc.message)
    return _error(exc.status_code, exc.code, exc.message, exc.alert, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Body/query validation failures are 400s like every other validation error."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    return _error(
        400,
        "VALIDATION_ERROR",
        message,
        details=[{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors],
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return _error(429, "RATE_LIMITED", f"Rate limit exceeded: {exc.detail}", "Too many requests. Try again later")


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Log unexpected exceptions in full and return a sanitized message."""
    logger.error(
        "unhandled_exception",
        exc_type=type(exc).__name__,
        exc_message=str(exc),
        path=request.url.path,
        exc_info=True,
    )

    message = str(exc) if settings.debug else "An unexpected error occurred"
    return _error(500, "internal_error", message, "Something went wrong. Please try again")


# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint - API info."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs" if settings.debug else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bayanihan.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
