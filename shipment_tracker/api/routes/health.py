"""GET /api/v1/health -- liveness check."""

from fastapi import APIRouter

from shipment_tracker.api.schemas import HealthResponse
from shipment_tracker.domain.entities import utc_now

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse(timestamp=utc_now())
