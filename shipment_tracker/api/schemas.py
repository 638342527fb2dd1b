"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from shipment_tracker.domain.entities import Coordinate, Place
from shipment_tracker.domain.enums import ShipmentStatus


# ── Requests ──────────────────────────────────────────────────────────


class CoordinatesIn(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


class PlaceIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    coordinates: CoordinatesIn

    def to_domain(self) -> Place:
        return Place(self.name, self.coordinates.to_domain())


class ShipmentCreateRequest(BaseModel):
    container_id: str = Field(..., min_length=1, max_length=64)
    current_location: PlaceIn
    destination: PlaceIn
    cargo: str = Field(..., min_length=1, max_length=255)
    weight: float = Field(..., gt=0, description="Cargo weight in kg.")


class ShipmentUpdateRequest(BaseModel):
    """Only the fields that are present are changed."""

    container_id: Optional[str] = Field(None, min_length=1, max_length=64)
    cargo: Optional[str] = Field(None, min_length=1, max_length=255)
    weight: Optional[float] = Field(None, gt=0)
    destination: Optional[PlaceIn] = None


class LocationUpdateRequest(PlaceIn):
    """A reported position: location name plus coordinates."""


class StatusUpdateRequest(BaseModel):
    status: str = Field(
        ...,
        description="One of: pending, in-transit, delayed, delivered.",
    )


# ── Responses ─────────────────────────────────────────────────────────


class CoordinatesOut(BaseModel):
    latitude: float
    longitude: float

    model_config = {"from_attributes": True}


class PlaceOut(BaseModel):
    name: str
    coordinates: CoordinatesOut

    model_config = {"from_attributes": True}


class PositionOut(PlaceOut):
    timestamp: datetime


class WaypointOut(PositionOut):
    distance_covered: float = 0.0


class ShipmentResponse(BaseModel):
    id: str
    shipment_id: str
    container_id: str
    cargo: str
    weight: float
    current_location: PositionOut
    destination: PlaceOut
    route: list[WaypointOut] = []
    status: ShipmentStatus
    estimated_arrival: datetime
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LocationUpdateResponse(ShipmentResponse):
    distance_to_destination: float
    total_distance_covered: float
    is_at_destination: bool


class EtaResponse(BaseModel):
    estimated_arrival: datetime
    distance_remaining: float
    total_journey_distance: float
    total_distance_covered: float
    progress_percentage: int
    average_speed: float = Field(..., description="km/h, one decimal.")
    estimated_remaining_hours: float
    current_location: PositionOut
    destination: PlaceOut
    status: ShipmentStatus
    is_at_destination: bool

    model_config = {"from_attributes": True}


class DeleteResponse(BaseModel):
    id: str
    shipment_id: str


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime


class ErrorResponse(BaseModel):
    detail: str
