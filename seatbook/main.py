"""
Main FastAPI application for Seatbook.
Handles application startup, middleware, and routing.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time

from seatbook.core.exceptions import BookingError, InconsistentState
from seatbook.db.database import db_manager
from seatbook.db.redis_client import redis_manager
from seatbook.api.v1.router import router as api_router, SERVICE_VERSION

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
    logger.info("Starting Seatbook...")

    try:
        await db_manager.initialize()
        logger.info("Database manager initialized")

        try:
            await db_manager.create_tables()
            logger.info("Database tables created")
        except Exception as e:
            logger.warning(f"Database tables may already exist: {e}")

    except Exception as e:
        logger.error(f"Failed to start Seatbook: {e}")
        raise

    # Redis is optional: without it clients fall back to polling
    try:
        await redis_manager.initialize()
        logger.info("Redis manager initialized")
    except Exception as e:
        logger.warning(f"Redis unavailable, change notifications disabled: {e}")

    logger.info("Seatbook started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Seatbook...")

    try:
        await db_manager.close()
        await redis_manager.close()
        logger.info("Seatbook shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


# Create FastAPI application
app = FastAPI(
    title="Seatbook",
    description="Seat reservation service for event ticketing",
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


# Booking protocol errors
@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Render booking errors with their stable error code."""
    if isinstance(exc, InconsistentState):
        logger.critical(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    elif exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.error_code}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "error_message": exc.message,
            "details": exc.details,
            "timestamp": datetime.now().isoformat()
        }
    )


# HTTP exception handler
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """HTTP exception handler for FastAPI HTTP exceptions."""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": "HTTP_ERROR",
            "error_message": exc.detail,
            "details": None,
            "timestamp": datetime.now().isoformat()
        },
        headers=getattr(exc, "headers", None)
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error_code": "INTERNAL_SERVER_ERROR",
            "error_message": "An internal server error occurred",
            "details": {"exception": str(exc)},
            "timestamp": datetime.now().isoformat()
        }
    )


# Include API router
app.include_router(api_router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with service information."""
    return {
        "service": "Seatbook",
        "version": SERVICE_VERSION,
        "status": "running",
        "endpoints": {
            "api": "/api/v1",
            "health": "/api/v1/health",
            "docs": "/docs"
        }
    }


# Health check endpoint (simple)
@app.get("/health")
async def simple_health_check():
    """Simple health check endpoint."""
    return {"status": "healthy", "service": "seatbook"}
