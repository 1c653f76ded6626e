"""Main application entry point for seatbooking.

This module creates and configures the FastAPI application.
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from seatbooking.config import settings
from seatbooking.api import admin, auth, booking
from seatbooking.database.session import create_tables
from seatbooking.domain.errors import DomainError, ErrorCode
from seatbooking.logging_config import configure_logging, request_id_ctx_var


logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.CODE_INVALID: 400,
    ErrorCode.CODE_EXPIRED: 400,
    ErrorCode.NAME_MISMATCH: 400,
    ErrorCode.INSUFFICIENT_USAGE: 400,
    ErrorCode.LEVEL_NOT_ALLOWED: 400,
    ErrorCode.SEAT_NOT_FOUND: 404,
    ErrorCode.LEVEL_NOT_FOUND: 404,
    ErrorCode.CODE_NOT_FOUND: 404,
    ErrorCode.SEAT_ALREADY_BOOKED: 409,
    ErrorCode.CODE_CONFLICT: 409,
    ErrorCode.STORAGE_FAILURE: 503,
    ErrorCode.INTERNAL_ERROR: 500,
}

RETRY_AFTER_SECONDS = "1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    configure_logging(settings.log_level)
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Environment: %s", settings.environment)

    # In production the schema comes from Alembic migrations
    if settings.environment == "development":
        logger.info("Creating database tables...")
        create_tables()

    yield

    logger.info("Shutting down application...")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Invitation code redemption and seat booking",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag every log record of a request with its id and echo it back."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_ctx_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_ctx_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


# Exception handlers
@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Render a rejection as {"success": false, "reason", "detail"}."""
    headers = {"Retry-After": RETRY_AFTER_SECONDS} if exc.retryable else None
    content = {"success": False, "reason": exc.code.value, "detail": exc.message}
    if exc.detail:
        content["context"] = exc.detail
    return JSONResponse(
        status_code=STATUS_BY_ERROR.get(exc.code, 500),
        content=content,
        headers=headers
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query parameters are invalid requests."""
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "reason": ErrorCode.INVALID_REQUEST.value,
            "detail": "Invalid request",
            "errors": [
                {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
                for error in exc.errors()
            ],
        }
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "reason": ErrorCode.INTERNAL_ERROR.value,
            "detail": "Internal server error",
        }
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment
    }


# Include routers
app.include_router(auth.router, prefix="/api")
app.include_router(booking.router, prefix="/api")
app.include_router(admin.router, prefix="/api")


def main():
    """Run the application using uvicorn."""
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )


if __name__ == "__main__":
    main()
