"""
Main FastAPI application for Registrations Service.
Handles application startup, middleware, and routing.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.container import build_container
from app.core.errors import DomainError, ErrorCode
from app.api.v1.router import router as api_router, SERVICE_VERSION

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Registrations Service...")

    try:
        app.state.container = await build_container()

        # Create database tables (skip if already exist)
        try:
            await app.state.container.db_manager.create_tables()
            logger.info("Database tables created")
        except Exception as e:
            logger.warning(f"Database tables may already exist: {e}")

        purged = await app.state.container.notification_service.purge_expired()
        logger.info(f"Startup sweep removed {purged} expired notifications")

        logger.info("Registrations Service started successfully")

    except Exception as e:
        logger.error(f"Failed to start Registrations Service: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down Registrations Service...")

    try:
        await app.state.container.close()
        logger.info("Registrations Service shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


# Create FastAPI application
app = FastAPI(
    title="Registrations Service",
    description="Event registrations, seat allocation, tickets and notifications for EventSphere",
    version=SERVICE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:8080"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add request processing time to response headers."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


def error_response(status_code: int, error_code: str, message, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "error_message": message,
            "timestamp": datetime.now(timezone.utc).isoformat()
        },
        headers=headers
    )


# Domain exception handler
@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """Map domain errors to their status code and error code."""
    if exc.status_code >= 500:
        logger.error(f"Internal error on {request.method} {request.url.path}: {exc}", exc_info=True)
    else:
        logger.info(f"Domain error on {request.method} {request.url.path}: {exc}")

    return error_response(exc.status_code, exc.code.value, exc.message)


# Request validation handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed payloads and parameters are reported as invalid input."""
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())[1:]) or "request"
        problems.append(f"{field}: {error.get('msg')}")
    message = "; ".join(problems) or "Invalid request"
    logger.info(f"Invalid input on {request.method} {request.url.path}: {message}")
    return error_response(422, ErrorCode.INVALID_INPUT.value, message)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)

    return error_response(500, "INTERNAL_SERVER_ERROR", "An internal server error occurred")


# HTTP exception handler
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Auth failures, unknown routes and other framework-level HTTP errors."""
    logger.warning(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}")
    return error_response(exc.status_code, "HTTP_ERROR", exc.detail, getattr(exc, "headers", None))


# Include API router
app.include_router(api_router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with service information."""
    return {
        "service": "Registrations Service",
        "version": SERVICE_VERSION,
        "status": "running",
        "endpoints": {
            "api": "/api/v1",
            "health": "/api/v1/health",
            "docs": "/docs",
            "redoc": "/redoc"
        }
    }


# Health check endpoint (simple)
@app.get("/health")
async def simple_health_check():
    """Simple health check endpoint."""
    return {"status": "healthy", "service": "registrations"}
