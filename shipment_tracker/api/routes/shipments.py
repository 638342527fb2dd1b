"""
Shipment endpoints
==================

GET    /api/v1/shipments                    -- list (filter by status, sort)
POST   /api/v1/shipments                    -- create a shipment
GET    /api/v1/shipments/{shipment_id}      -- shipment details and route
PUT    /api/v1/shipments/{shipment_id}      -- edit cargo / container / destination
DELETE /api/v1/shipments/{shipment_id}      -- delete a shipment
POST   /api/v1/shipments/{shipment_id}/location -- report a new position
GET    /api/v1/shipments/{shipment_id}/eta      -- progress and ETA summary
PUT    /api/v1/shipments/{shipment_id}/status   -- force a status

``shipment_id`` may be the public ``SH...`` identifier or the 24-character
storage id.  Each route is rate limited with the limit the app factory
configured (``Settings.rate_limit``).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from shipment_tracker.api.dependencies import get_tracking_service
from shipment_tracker.api.middleware import limiter, route_rate_limit
from shipment_tracker.api.schemas import (
    DeleteResponse,
    ErrorResponse,
    EtaResponse,
    LocationUpdateRequest,
    LocationUpdateResponse,
    ShipmentCreateRequest,
    ShipmentResponse,
    ShipmentUpdateRequest,
    StatusUpdateRequest,
)
from shipment_tracker.services.tracking import TrackingService

router = APIRouter(prefix="/shipments", tags=["shipments"])

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Shipment not found"}}


@router.get(
    "",
    response_model=list[ShipmentResponse],
    summary="List shipments",
)
@limiter.limit(route_rate_limit)
async def list_shipments(
    request: Request,
    status: Optional[str] = Query(None, description="Exact status filter."),
    sort_by: str = Query("created_at"),
    order: str = Query("desc", description="asc or desc"),
    service: TrackingService = Depends(get_tracking_service),
):
    shipments = await service.list_shipments(status, sort_by, order)
    return [ShipmentResponse.model_validate(s) for s in shipments]


@router.post(
    "",
    status_code=201,
    response_model=ShipmentResponse,
    summary="Create a shipment",
    responses={400: {"model": ErrorResponse}},
)
@limiter.limit(route_rate_limit)
async def create_shipment(
    request: Request,
    body: ShipmentCreateRequest,
    service: TrackingService = Depends(get_tracking_service),
):
    shipment = await service.create(
        container_id=body.container_id,
        current_location=body.current_location.to_domain(),
        destination=body.destination.to_domain(),
        cargo=body.cargo,
        weight=body.weight,
    )
    return ShipmentResponse.model_validate(shipment)


@router.get(
    "/{shipment_id}",
    response_model=ShipmentResponse,
    summary="Get shipment details",
    responses=NOT_FOUND,
)
@limiter.limit(route_rate_limit)
async def get_shipment(
    request: Request,
    shipment_id: str,
    service: TrackingService = Depends(get_tracking_service),
):
    return ShipmentResponse.model_validate(await service.get(shipment_id))


@router.put(
    "/{shipment_id}",
    response_model=ShipmentResponse,
    summary="Update shipment details",
    description=(
        "Changes container id, cargo, weight or destination.  Route, status "
        "and ETA are left as they are until the next location report."
    ),
    responses=NOT_FOUND,
)
@limiter.limit(route_rate_limit)
async def update_shipment(
    request: Request,
    shipment_id: str,
    body: ShipmentUpdateRequest,
    service: TrackingService = Depends(get_tracking_service),
):
    shipment = await service.update_details(
        shipment_id,
        container_id=body.container_id,
        cargo=body.cargo,
        weight=body.weight,
        destination=body.destination.to_domain() if body.destination else None,
    )
    return ShipmentResponse.model_validate(shipment)


@router.delete(
    "/{shipment_id}",
    response_model=DeleteResponse,
    summary="Delete a shipment",
    responses=NOT_FOUND,
)
@limiter.limit(route_rate_limit)
async def delete_shipment(
    request: Request,
    shipment_id: str,
    service: TrackingService = Depends(get_tracking_service),
):
    shipment = await service.delete(shipment_id)
    return DeleteResponse(id=shipment.id, shipment_id=shipment.shipment_id)


@router.post(
    "/{shipment_id}/location",
    response_model=LocationUpdateResponse,
    summary="Report the shipment's current location",
    description=(
        "Appends the position to the route and recomputes status and ETA.  "
        "Within 5 km of the destination the shipment becomes delivered; "
        "delivered shipments reject further reports with 409."
    ),
    responses={**NOT_FOUND, 409: {"model": ErrorResponse}},
)
@limiter.limit(route_rate_limit)
async def report_location(
    request: Request,
    shipment_id: str,
    body: LocationUpdateRequest,
    service: TrackingService = Depends(get_tracking_service),
):
    update = await service.report_location(
        shipment_id, body.name, body.coordinates.to_domain()
    )
    payload = ShipmentResponse.model_validate(update.shipment).model_dump()
    return LocationUpdateResponse(
        **payload,
        distance_to_destination=update.distance_to_destination,
        total_distance_covered=update.total_distance_covered,
        is_at_destination=update.is_at_destination,
    )


@router.get(
    "/{shipment_id}/eta",
    response_model=EtaResponse,
    summary="Get ETA and journey progress",
    responses=NOT_FOUND,
)
@limiter.limit(route_rate_limit)
async def get_eta(
    request: Request,
    shipment_id: str,
    service: TrackingService = Depends(get_tracking_service),
):
    return EtaResponse.model_validate(await service.summarize(shipment_id))


@router.put(
    "/{shipment_id}/status",
    response_model=ShipmentResponse,
    summary="Force a shipment status",
    description=(
        "Manual override without distance checks.  Forcing ``delivered`` "
        "sets the arrival time to now."
    ),
    responses={**NOT_FOUND, 400: {"model": ErrorResponse}},
)
@limiter.limit(route_rate_limit)
async def set_status(
    request: Request,
    shipment_id: str,
    body: StatusUpdateRequest,
    service: TrackingService = Depends(get_tracking_service),
):
    shipment = await service.set_status(shipment_id, body.status)
    return ShipmentResponse.model_validate(shipment)
