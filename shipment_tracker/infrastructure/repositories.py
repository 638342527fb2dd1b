"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

The repository receives an ``AsyncSession`` (unit-of-work) and speaks in
domain ``Shipment`` snapshots: rows never leave this module.
"""

from __future__ import annotations

import re
import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ShipmentModel, WaypointModel
from shipment_tracker.domain.entities import (
    Coordinate,
    Place,
    Position,
    Shipment,
    Waypoint,
)
from shipment_tracker.domain.enums import ShipmentStatus, SortOrder
from shipment_tracker.domain.errors import InvalidInput

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")

SORTABLE_FIELDS = {
    "created_at": ShipmentModel.created_at,
    "updated_at": ShipmentModel.updated_at,
    "estimated_arrival": ShipmentModel.estimated_arrival,
    "status": ShipmentModel.status,
    "container_id": ShipmentModel.container_id,
    "shipment_id": ShipmentModel.shipment_id,
    "weight": ShipmentModel.weight,
}


def new_storage_id() -> str:
    return secrets.token_hex(12)


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Row <-> entity mapping ────────────────────────────────────────────


def _to_entity(row: ShipmentModel) -> Shipment:
    return Shipment(
        id=row.id,
        shipment_id=row.shipment_id,
        container_id=row.container_id,
        cargo=row.cargo,
        weight=row.weight,
        current_location=Position(
            row.current_name,
            Coordinate(row.current_lat, row.current_lng),
            _utc(row.current_timestamp),
        ),
        destination=Place(
            row.destination_name,
            Coordinate(row.destination_lat, row.destination_lng),
        ),
        route=tuple(
            Waypoint(
                wp.name,
                Coordinate(wp.latitude, wp.longitude),
                _utc(wp.timestamp),
                wp.distance_covered or 0.0,
            )
            for wp in row.waypoints
        ),
        status=ShipmentStatus(row.status),
        estimated_arrival=_utc(row.estimated_arrival),
        created_at=_utc(row.created_at),
        updated_at=_utc(row.updated_at),
    )


def _waypoint_row(seq: int, point: Waypoint) -> WaypointModel:
    return WaypointModel(
        seq=seq,
        name=point.name,
        latitude=point.coordinates.latitude,
        longitude=point.coordinates.longitude,
        timestamp=point.timestamp,
        distance_covered=point.distance_covered,
    )


def _apply(row: ShipmentModel, shipment: Shipment) -> None:
    """Copy the mutable parts of *shipment* onto *row*."""
    row.container_id = shipment.container_id
    row.cargo = shipment.cargo
    row.weight = shipment.weight
    row.current_name = shipment.current_location.name
    row.current_lat = shipment.current_location.coordinates.latitude
    row.current_lng = shipment.current_location.coordinates.longitude
    row.current_timestamp = shipment.current_location.timestamp
    row.destination_name = shipment.destination.name
    row.destination_lat = shipment.destination.coordinates.latitude
    row.destination_lng = shipment.destination.coordinates.longitude
    row.status = shipment.status
    row.estimated_arrival = shipment.estimated_arrival
    row.updated_at = shipment.updated_at or shipment.created_at


class ShipmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, shipment: Shipment) -> Shipment:
        """Insert a new shipment and return it with its storage id set."""
        storage_id = new_storage_id()
        row = ShipmentModel(
            id=storage_id,
            shipment_id=shipment.shipment_id,
            created_at=shipment.created_at,
        )
        _apply(row, shipment)
        row.waypoints = [
            _waypoint_row(seq, point) for seq, point in enumerate(shipment.route)
        ]
        self.session.add(row)
        await self.session.flush()
        return shipment.replace(id=storage_id)

    async def get_by_id(self, storage_id: str) -> Optional[Shipment]:
        row = await self.session.get(ShipmentModel, storage_id)
        return _to_entity(row) if row else None

    async def get_for_update(self, storage_id: str) -> Optional[Shipment]:
        """SELECT ... FOR UPDATE, bypassing whatever the session already holds."""
        result = await self.session.execute(
            select(ShipmentModel)
            .where(ShipmentModel.id == storage_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _to_entity(row) if row else None

    async def get_by_shipment_id(self, shipment_id: str) -> Optional[Shipment]:
        result = await self.session.execute(
            select(ShipmentModel).where(ShipmentModel.shipment_id == shipment_id)
        )
        row = result.scalar_one_or_none()
        return _to_entity(row) if row else None

    async def resolve(self, identifier: str) -> Optional[Shipment]:
        """Look up by public shipment id, then by storage id if it looks like one."""
        shipment = await self.get_by_shipment_id(identifier)
        if shipment is None and OBJECT_ID_PATTERN.match(identifier):
            shipment = await self.get_by_id(identifier.lower())
        return shipment

    async def list_all(
        self,
        status: Optional[ShipmentStatus] = None,
        sort_by: str = "created_at",
        order: SortOrder = SortOrder.DESC,
    ) -> list[Shipment]:
        column = SORTABLE_FIELDS.get(sort_by)
        if column is None:
            raise InvalidInput(
                f"Cannot sort by {sort_by!r}. Must be one of: "
                + ", ".join(SORTABLE_FIELDS)
            )
        query = select(ShipmentModel).order_by(
            column.desc() if order is SortOrder.DESC else column.asc()
        )
        if status is not None:
            query = query.where(ShipmentModel.status == status)
        result = await self.session.execute(query)
        return [_to_entity(row) for row in result.scalars().all()]

    async def save(self, shipment: Shipment) -> Shipment:
        """Persist *shipment*; route entries beyond the stored ones are appended."""
        row = await self.session.get(ShipmentModel, shipment.id)
        if row is None:
            raise LookupError(f"Shipment row {shipment.id} does not exist")
        _apply(row, shipment)
        known = len(row.waypoints)
        for seq in range(known, len(shipment.route)):
            row.waypoints.append(_waypoint_row(seq, shipment.route[seq]))
        await self.session.flush()
        return shipment

    async def delete(self, storage_id: str) -> bool:
        row = await self.session.get(ShipmentModel, storage_id)
        if row is None:
            return False
        await self.session.delete(row)
        await self.session.flush()
        return True
