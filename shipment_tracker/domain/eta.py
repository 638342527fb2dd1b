"""
ETA Reporter
============

Read-only journey summary for a shipment snapshot.

Formula
-------
progress   = clamp((total - remaining) / total x 100, 0, 100)
avg_speed  = covered_km / elapsed_hours        (fallback 50 km/h if no time
                                                has elapsed)
remaining_hours = remaining_km / max(avg_speed, 20)

The 20 km/h floor keeps a stalled shipment from reporting an absurd ETA.

Complexity: O(n) in route length.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from .distance import distance_km
from .entities import Place, Position, Shipment
from .enums import ShipmentStatus

FALLBACK_SPEED_KMH = 50.0
MIN_SPEED_KMH = 20.0
ARRIVAL_RADIUS_KM = 5.0


def _round_half_up(value: float, ndigits: int = 0) -> float:
    scale = 10 ** ndigits
    return math.floor(value * scale + 0.5) / scale


@dataclass(frozen=True)
class EtaSummary:
    estimated_arrival: datetime
    distance_remaining: float
    total_journey_distance: float
    total_distance_covered: float
    progress_percentage: int
    average_speed: float
    estimated_remaining_hours: float
    current_location: Position
    destination: Place
    status: ShipmentStatus
    is_at_destination: bool


class EtaReporter:
    def __init__(
        self,
        fallback_speed_kmh: float = FALLBACK_SPEED_KMH,
        min_speed_kmh: float = MIN_SPEED_KMH,
        arrival_radius_km: float = ARRIVAL_RADIUS_KM,
    ):
        self.fallback_speed_kmh = fallback_speed_kmh
        self.min_speed_kmh = min_speed_kmh
        self.arrival_radius_km = arrival_radius_km

    def summarize(self, shipment: Shipment, now: datetime) -> EtaSummary:
        destination = shipment.destination.coordinates
        remaining = distance_km(shipment.current_location.coordinates, destination)

        if shipment.route:
            origin = shipment.route[0]
            total = distance_km(origin.coordinates, destination)
            started_at = origin.timestamp
        else:
            total = remaining
            started_at = shipment.created_at

        covered = shipment.total_distance_covered

        progress = 0.0
        if total > 0:
            progress = min(max((total - remaining) / total * 100, 0.0), 100.0)

        elapsed_hours = (now - started_at).total_seconds() / 3600
        if elapsed_hours > 0:
            speed = covered / elapsed_hours
        else:
            speed = self.fallback_speed_kmh

        remaining_hours = remaining / max(speed, self.min_speed_kmh)

        return EtaSummary(
            estimated_arrival=shipment.estimated_arrival,
            distance_remaining=remaining,
            total_journey_distance=total,
            total_distance_covered=covered,
            progress_percentage=int(_round_half_up(progress)),
            average_speed=_round_half_up(speed, 1),
            estimated_remaining_hours=_round_half_up(remaining_hours, 1),
            current_location=shipment.current_location,
            destination=shipment.destination,
            status=shipment.status,
            is_at_destination=remaining <= self.arrival_radius_km,
        )
