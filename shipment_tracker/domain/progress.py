"""
Journey Progress Engine
=======================

Turns a reported position into a new shipment snapshot.

Per report
----------
1. Distance to destination from the new position (haversine).
2. Arrival test: within ``arrival_radius_km`` (default 5 km) counts as
   delivered.
3. Hop distance from the last route entry, appended to the route together
   with the new position.
4. Status / ETA:

   * arrived      -> DELIVERED, ETA frozen to the report time
   * not arrived  -> PENDING is promoted to IN_TRANSIT and the ETA becomes
     ``now + distance / cruising_speed_kmh`` (default 50 km/h)

Delivered shipments are terminal: further reports raise
``TerminalStateViolation``.

The engine never mutates its input; it returns a new ``Shipment``.

Complexity: O(n) in route length (for the cumulative distance), O(1)
haversine calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .distance import distance_km
from .entities import (
    Coordinate,
    Place,
    Position,
    Shipment,
    Waypoint,
    generate_shipment_id,
)
from .enums import ShipmentStatus
from .errors import InvalidInput, TerminalStateViolation

ARRIVAL_RADIUS_KM = 5.0
CRUISING_SPEED_KMH = 50.0


@dataclass(frozen=True)
class LocationUpdate:
    """Result of a location report: the new snapshot plus derived values."""

    shipment: Shipment
    distance_to_destination: float
    distance_from_last_point: float
    total_distance_covered: float
    is_at_destination: bool


class ProgressEngine:
    """High-level API used by the tracking service."""

    def __init__(
        self,
        arrival_radius_km: float = ARRIVAL_RADIUS_KM,
        cruising_speed_kmh: float = CRUISING_SPEED_KMH,
    ):
        self.arrival_radius_km = arrival_radius_km
        self.cruising_speed_kmh = cruising_speed_kmh

    def arrival_after(self, distance: float, now: datetime) -> datetime:
        """ETA for *distance* km at the cruising speed, starting at *now*."""
        return now + timedelta(hours=distance / self.cruising_speed_kmh)

    def open(
        self,
        *,
        container_id: str,
        origin: Place,
        destination: Place,
        cargo: str,
        weight: float,
        now: datetime,
    ) -> Shipment:
        """Build a PENDING shipment whose route is seeded with *origin*."""
        if not container_id or not cargo or not weight:
            raise InvalidInput(
                "Container ID, current location, destination, cargo, "
                "and weight are required"
            )
        if origin is None or destination is None:
            raise InvalidInput("Current location and destination are required")
        origin_coords = Coordinate.require(origin.coordinates)
        destination_coords = Coordinate.require(destination.coordinates)

        start = Waypoint(origin.name, origin_coords, now, 0.0)
        return Shipment(
            shipment_id=generate_shipment_id(now),
            container_id=container_id,
            cargo=cargo,
            weight=weight,
            current_location=start.as_position(),
            destination=destination,
            estimated_arrival=self.arrival_after(
                distance_km(origin_coords, destination_coords), now
            ),
            created_at=now,
            updated_at=now,
            route=(start,),
            status=ShipmentStatus.PENDING,
        )

    def report_location(
        self,
        shipment: Shipment,
        name: str,
        coordinates: Optional[Coordinate],
        now: datetime,
    ) -> LocationUpdate:
        coordinates = Coordinate.require(coordinates)
        if shipment.is_delivered:
            raise TerminalStateViolation(
                "Cannot update location for delivered shipment"
            )

        to_destination = distance_km(coordinates, shipment.destination.coordinates)
        at_destination = to_destination <= self.arrival_radius_km

        last = shipment.last_waypoint
        hop = distance_km(last.coordinates, coordinates) if last else 0.0

        updated = shipment.replace(
            route=shipment.route + (Waypoint(name, coordinates, now, hop),),
            current_location=Position(name, coordinates, now),
            updated_at=now,
        )

        if at_destination:
            updated = updated.advance(ShipmentStatus.DELIVERED).replace(
                estimated_arrival=now
            )
        else:
            if updated.status is ShipmentStatus.PENDING:
                updated = updated.advance(ShipmentStatus.IN_TRANSIT)
            updated = updated.replace(
                estimated_arrival=self.arrival_after(to_destination, now)
            )
            # NOTE: compares against the ETA derived from this same ``now``,
            # so it cannot fire for a positive distance.  Whether the previous
            # ETA was meant here is unknown; left as-is until that is settled.
            if (
                now > updated.estimated_arrival
                and updated.status is ShipmentStatus.IN_TRANSIT
            ):
                updated = updated.advance(ShipmentStatus.DELAYED)

        return LocationUpdate(
            shipment=updated,
            distance_to_destination=to_destination,
            distance_from_last_point=hop,
            total_distance_covered=updated.total_distance_covered,
            is_at_destination=at_destination,
        )

    @staticmethod
    def force_status(
        shipment: Shipment, status: ShipmentStatus, now: datetime
    ) -> Shipment:
        """Set *status* without distance checks (manual override).

        Forcing DELIVERED freezes the ETA to *now*; any other status keeps
        the current ETA.
        """
        changes = {"status": status, "updated_at": now}
        if status is ShipmentStatus.DELIVERED:
            changes["estimated_arrival"] = now
        return shipment.replace(**changes)


def parse_status(value: str) -> ShipmentStatus:
    try:
        return ShipmentStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in ShipmentStatus)
        raise InvalidInput(
            f"Invalid status. Must be one of: {valid}"
        ) from None
