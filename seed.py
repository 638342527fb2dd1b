"""
Seed script -- populates the database with sample shipments for reviewers.

Run after migrations:
    python seed.py

Creates four US shipments, replaying their location reports over the past
few days so that the route, status and ETA look like real traffic:
  - one PENDING   (no reports yet)
  - two IN_TRANSIT (partway along)
  - one DELIVERED (reached its destination)
"""

import asyncio
from datetime import timedelta

from sqlalchemy import func, select

from shipment_tracker.config import settings
from shipment_tracker.domain.entities import Coordinate, Place, utc_now
from shipment_tracker.infrastructure.database import Database
from shipment_tracker.infrastructure.models import ShipmentModel
from shipment_tracker.infrastructure.redis_client import RedisConnection
from shipment_tracker.services.tracking import TrackingService

PLACES = {
    "new_york": Place("New York", Coordinate(40.7128, -74.0060)),
    "chicago": Place("Chicago", Coordinate(41.8781, -87.6298)),
    "denver": Place("Denver", Coordinate(39.7392, -104.9903)),
    "los_angeles": Place("Los Angeles", Coordinate(34.0522, -118.2437)),
    "houston": Place("Houston", Coordinate(29.7604, -95.3698)),
    "dallas": Place("Dallas", Coordinate(32.7767, -96.7970)),
    "atlanta": Place("Atlanta", Coordinate(33.7490, -84.3880)),
    "miami": Place("Miami", Coordinate(25.7617, -80.1918)),
    "seattle": Place("Seattle", Coordinate(47.6062, -122.3321)),
    "portland": Place("Portland", Coordinate(45.5152, -122.6784)),
}

# (container, cargo, weight kg, origin, destination, [(hours after start, stop)])
SHIPMENTS = [
    ("MSCU1234565", "Electronics", 8_200.0, "new_york", "los_angeles", []),
    ("MAEU7654321", "Auto parts", 15_400.0, "new_york", "los_angeles",
     [(22, "chicago"), (48, "denver")]),
    ("CMAU2468101", "Frozen seafood", 11_000.0, "miami", "dallas",
     [(14, "atlanta")]),
    ("HLXU1357913", "Furniture", 6_750.0, "seattle", "portland",
     [(2, "portland")]),
]


async def replay_journeys(service: TrackingService, now: list, start) -> list:
    """Create SHIPMENTS, moving the clock cell *now* through each journey."""
    seeded = []
    for index, (container, cargo, weight, origin, dest, stops) in enumerate(SHIPMENTS):
        # distinct creation times keep SH ids and listing order unique
        opened = start + timedelta(minutes=5 * index)
        now[0] = opened
        shipment = await service.create(
            container_id=container,
            current_location=PLACES[origin],
            destination=PLACES[dest],
            cargo=cargo,
            weight=weight,
        )
        for hours, stop in stops:
            now[0] = opened + timedelta(hours=hours)
            place = PLACES[stop]
            await service.report_location(
                shipment.shipment_id, place.name, place.coordinates
            )
        seeded.append(await service.get(shipment.shipment_id))
    return seeded


async def seed():
    database = Database(settings.database_url)
    redis = RedisConnection(settings.redis_url)
    await database.connect()
    await redis.connect()
    try:
        async with database.session() as session:
            # Check if already seeded
            count = await session.scalar(
                select(func.count()).select_from(ShipmentModel)
            )
            if count:
                print("Database already seeded. Skipping.")
                return

            now = [utc_now() - timedelta(days=3)]
            service = TrackingService(
                session, redis.client, settings, clock=lambda: now[0]
            )
            for final in await replay_journeys(service, now, now[0]):
                print(
                    f"  {final.shipment_id}  {final.container_id}  {final.status.value}"
                )

            await session.commit()
            print("\nSeed complete!")
    finally:
        await redis.disconnect()
        await database.disconnect()


if __name__ == "__main__":
    print("Seeding database...")
    asyncio.run(seed())
