"""
Domain entities with business logic.

Patterns used
-------------
- **Value Objects** (``Coordinate``, ``Place``, ``Position``, ``Waypoint``)
  are frozen dataclasses.
- ``Shipment`` is a snapshot: every change produces a new instance via
  ``dataclasses.replace`` so callers decide when to persist.
- **State Pattern** on ``Shipment.advance``: enforces the status lifecycle
  (PENDING -> IN_TRANSIT -> DELAYED | DELIVERED) for location reports.
"""

from __future__ import annotations

import dataclasses
import math
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .enums import SHIPMENT_TRANSITIONS, ShipmentStatus
from .errors import InvalidInput, InvalidStateTransition, TerminalStateViolation


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_shipment_id(now: datetime) -> str:
    """``SH`` + epoch milliseconds + random 0-999.  Not guaranteed unique."""
    millis = int(now.timestamp() * 1000)
    return f"SH{millis}{random.randrange(1000)}"


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    @classmethod
    def require(cls, value: Optional[Coordinate]) -> Coordinate:
        """Return *value* if it holds two finite numbers, else raise."""
        if value is None:
            raise InvalidInput("Location coordinates are required")
        for part in (value.latitude, value.longitude):
            if (
                part is None
                or isinstance(part, bool)
                or not isinstance(part, (int, float))
                or not math.isfinite(part)
            ):
                raise InvalidInput(
                    "Coordinates must have numeric latitude and longitude"
                )
        return value


@dataclass(frozen=True)
class Place:
    """A named point without a time, e.g. a destination."""

    name: str
    coordinates: Coordinate


@dataclass(frozen=True)
class Position:
    """Where a shipment was seen, and when."""

    name: str
    coordinates: Coordinate
    timestamp: datetime


@dataclass(frozen=True)
class Waypoint(Position):
    """A route entry.  ``distance_covered`` is km since the previous entry."""

    distance_covered: float = 0.0

    def as_position(self) -> Position:
        return Position(self.name, self.coordinates, self.timestamp)


# ── Entities ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Shipment:
    shipment_id: str
    container_id: str
    cargo: str
    weight: float
    current_location: Position
    destination: Place
    estimated_arrival: datetime
    created_at: datetime
    route: tuple[Waypoint, ...] = field(default_factory=tuple)
    status: ShipmentStatus = ShipmentStatus.PENDING
    updated_at: Optional[datetime] = None
    # Storage-native identifier, assigned on first insert.
    id: Optional[str] = None

    @property
    def last_waypoint(self) -> Optional[Waypoint]:
        return self.route[-1] if self.route else None

    @property
    def total_distance_covered(self) -> float:
        return sum(point.distance_covered for point in self.route)

    @property
    def is_delivered(self) -> bool:
        return self.status is ShipmentStatus.DELIVERED

    def replace(self, **changes) -> Shipment:
        return dataclasses.replace(self, **changes)

    def advance(self, new_status: ShipmentStatus) -> Shipment:
        """Return a copy in *new_status* if the lifecycle allows it."""
        if new_status == self.status:
            return self
        allowed = SHIPMENT_TRANSITIONS.get(self.status, set())
        if not allowed:
            raise TerminalStateViolation(
                f"Shipment {self.shipment_id} is {self.status.value}; "
                "no further updates are accepted"
            )
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        return self.replace(status=new_status)
