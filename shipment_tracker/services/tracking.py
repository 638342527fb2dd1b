"""
Tracking service
================

Read-modify-write transactions around the journey core.

Each mutating call on an existing shipment

1. resolves the identifier (public shipment id, then storage id),
2. takes the shipment's Redis lock,
3. re-reads the snapshot under the lock,
4. hands it to ``ProgressEngine`` and persists the returned value.

Commit / rollback belongs to the caller's session (one per request).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Optional

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from shipment_tracker.config import Settings, settings as default_settings
from shipment_tracker.domain.entities import Coordinate, Place, Shipment, utc_now
from shipment_tracker.domain.enums import SortOrder
from shipment_tracker.domain.errors import InvalidInput, ShipmentBusy, ShipmentNotFound
from shipment_tracker.domain.eta import EtaReporter, EtaSummary
from shipment_tracker.domain.progress import LocationUpdate, ProgressEngine, parse_status
from shipment_tracker.infrastructure.locks import DistributedLock, LockNotAcquired
from shipment_tracker.infrastructure.repositories import ShipmentRepository

logger = logging.getLogger(__name__)


class TrackingService:
    def __init__(
        self,
        session: AsyncSession,
        redis: aioredis.Redis,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repo = ShipmentRepository(session)
        self.redis = redis
        self.settings = settings
        self.clock = clock
        self.engine = ProgressEngine(
            arrival_radius_km=settings.arrival_radius_km,
            cruising_speed_kmh=settings.cruising_speed_kmh,
        )
        self.reporter = EtaReporter(
            fallback_speed_kmh=settings.cruising_speed_kmh,
            min_speed_kmh=settings.min_eta_speed_kmh,
            arrival_radius_km=settings.arrival_radius_km,
        )

    # ── Reads ─────────────────────────────────────────────────────────

    async def get(self, identifier: str) -> Shipment:
        shipment = await self.repo.resolve(identifier)
        if shipment is None:
            logger.debug("Shipment not found for ID: %s", identifier)
            raise ShipmentNotFound(identifier)
        return shipment

    async def list_shipments(
        self,
        status: Optional[str] = None,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> list[Shipment]:
        wanted = parse_status(status) if status else None
        try:
            direction = SortOrder(order.lower())
        except ValueError:
            raise InvalidInput("Order must be 'asc' or 'desc'") from None
        return await self.repo.list_all(wanted, sort_by, direction)

    async def summarize(self, identifier: str) -> EtaSummary:
        shipment = await self.get(identifier)
        return self.reporter.summarize(shipment, self.clock())

    # ── Writes ────────────────────────────────────────────────────────

    async def create(
        self,
        *,
        container_id: str,
        current_location: Place,
        destination: Place,
        cargo: str,
        weight: float,
    ) -> Shipment:
        shipment = self.engine.open(
            container_id=container_id,
            origin=current_location,
            destination=destination,
            cargo=cargo,
            weight=weight,
            now=self.clock(),
        )
        shipment = await self.repo.add(shipment)
        logger.info(
            "Created shipment %s (container %s) ETA %s",
            shipment.shipment_id,
            shipment.container_id,
            shipment.estimated_arrival.isoformat(),
        )
        return shipment

    async def report_location(
        self, identifier: str, name: str, coordinates: Optional[Coordinate]
    ) -> LocationUpdate:
        Coordinate.require(coordinates)
        found = await self.get(identifier)
        async with self._locked(found):
            current = await self._reread(found, identifier)
            update = self.engine.report_location(
                current, name, coordinates, self.clock()
            )
            await self.repo.save(update.shipment)

        logger.info(
            "Shipment %s at %s: %.1f km to destination, status %s",
            update.shipment.shipment_id,
            name,
            update.distance_to_destination,
            update.shipment.status.value,
        )
        if update.is_at_destination:
            logger.info("Shipment %s delivered", update.shipment.shipment_id)
        return update

    async def set_status(self, identifier: str, status: str) -> Shipment:
        new_status = parse_status(status)
        found = await self.get(identifier)
        async with self._locked(found):
            current = await self._reread(found, identifier)
            updated = self.engine.force_status(current, new_status, self.clock())
            await self.repo.save(updated)

        logger.info(
            "Shipment %s status forced %s -> %s",
            updated.shipment_id,
            current.status.value,
            new_status.value,
        )
        return updated

    async def update_details(
        self,
        identifier: str,
        *,
        container_id: Optional[str] = None,
        cargo: Optional[str] = None,
        weight: Optional[float] = None,
        destination: Optional[Place] = None,
    ) -> Shipment:
        """Edit metadata / destination.  Route, status and ETA are untouched."""
        found = await self.get(identifier)
        async with self._locked(found):
            current = await self._reread(found, identifier)
            changes: dict = {}
            if container_id is not None:
                changes["container_id"] = container_id
            if cargo is not None:
                changes["cargo"] = cargo
            if weight is not None:
                changes["weight"] = weight
            if destination is not None:
                Coordinate.require(destination.coordinates)
                changes["destination"] = destination
            if not changes:
                return current
            updated = current.replace(updated_at=self.clock(), **changes)
            await self.repo.save(updated)

        logger.info(
            "Shipment %s details updated: %s",
            updated.shipment_id,
            ", ".join(sorted(changes)),
        )
        return updated

    async def delete(self, identifier: str) -> Shipment:
        found = await self.get(identifier)
        async with self._locked(found):
            shipment = await self._reread(found, identifier)
            await self.repo.delete(shipment.id)
        logger.info("Deleted shipment %s", shipment.shipment_id)
        return shipment

    # ── Internals ─────────────────────────────────────────────────────

    async def _reread(self, found: Shipment, identifier: str) -> Shipment:
        """Fresh row under the lock; it may have been deleted meanwhile."""
        current = await self.repo.get_for_update(found.id)
        if current is None:
            logger.debug("Shipment %s vanished before update", found.shipment_id)
            raise ShipmentNotFound(identifier)
        return current

    @asynccontextmanager
    async def _locked(self, shipment: Shipment) -> AsyncIterator[None]:
        lock = DistributedLock.for_shipment(
            self.redis, shipment.id, self.settings.lock_ttl_seconds
        )
        try:
            async with lock:
                yield
        except LockNotAcquired:
            logger.warning(
                "Shipment %s is locked by another request", shipment.shipment_id
            )
            raise ShipmentBusy(
                f"Shipment {shipment.shipment_id} is being updated; retry shortly"
            ) from None
