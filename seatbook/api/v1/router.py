"""
Main API router for Seatbook.
Combines all API endpoints and provides health checks.
"""

from fastapi import APIRouter
import logging

from seatbook.api.dependencies import check_service_health
from seatbook.schemas.ticketing import HealthCheckResponse

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"

# Create main router
router = APIRouter(prefix="/api/v1")

# Include sub-routers
from seatbook.api.v1.events import router as events_router
from seatbook.api.v1.tickets import router as tickets_router
from seatbook.api.v1.admin import router as admin_router

router.include_router(events_router)
router.include_router(tickets_router)
router.include_router(admin_router)


@router.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """
    Health check endpoint.

    Returns:
        Service health status; "degraded" when only Redis is down
    """
    health_status = await check_service_health()

    return HealthCheckResponse(
        status=health_status["overall"],
        version=SERVICE_VERSION,
        database=health_status["database"],
        redis=health_status["redis"]
    )
