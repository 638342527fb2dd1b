"""
Concurrency safety tests.

Demonstrates:
1. The per-shipment Redis lock acquires / releases with SET NX EX + Lua.
2. A held lock turns a location report into ``ShipmentBusy`` without
   touching the stored shipment.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from shipment_tracker.domain.enums import ShipmentStatus
from shipment_tracker.domain.errors import ShipmentBusy, TerminalStateViolation
from shipment_tracker.infrastructure.locks import DistributedLock, LockNotAcquired
from shipment_tracker.services.tracking import TrackingService
from tests.conftest import CHICAGO, LOS_ANGELES, NEW_YORK


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_awaited_once_with(
            "lock:test-key", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_calls_eval(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        await lock.acquire()
        await lock.release()

        mock_redis.eval.assert_called_once()

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        with pytest.raises(LockNotAcquired, match="Could not acquire lock"):
            async with lock:
                pass

    def test_shipment_lock_key(self):
        lock = DistributedLock.for_shipment(AsyncMock(), "a" * 24)
        assert lock.key == f"lock:shipment:{'a' * 24}"


class TestLockedUpdates:
    @pytest.mark.asyncio
    async def test_report_location_releases_lock(self, db_session, fake_redis, clock):
        service = TrackingService(db_session, fake_redis, clock=clock)
        created = await service.create(
            container_id="C-1",
            current_location=NEW_YORK,
            destination=LOS_ANGELES,
            cargo="Steel",
            weight=100,
        )
        clock.advance(hours=5)
        await service.report_location(created.shipment_id, "Chicago", CHICAGO.coordinates)

        fake_redis.set.assert_awaited_once()
        assert fake_redis.set.await_args.args[0] == f"lock:shipment:{created.id}"
        fake_redis.eval.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_held_lock_rejects_update(self, db_session, fake_redis, clock):
        service = TrackingService(db_session, fake_redis, clock=clock)
        created = await service.create(
            container_id="C-1",
            current_location=NEW_YORK,
            destination=LOS_ANGELES,
            cargo="Steel",
            weight=100,
        )
        fake_redis.set.return_value = False

        with pytest.raises(ShipmentBusy):
            await service.report_location(
                created.shipment_id, "Chicago", CHICAGO.coordinates
            )

        stored = await service.get(created.shipment_id)
        assert stored.status == ShipmentStatus.PENDING
        assert len(stored.route) == 1
        fake_redis.eval.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lock_released_when_update_fails(self, db_session, fake_redis, clock):
        service = TrackingService(db_session, fake_redis, clock=clock)
        created = await service.create(
            container_id="C-1",
            current_location=NEW_YORK,
            destination=LOS_ANGELES,
            cargo="Steel",
            weight=100,
        )
        await service.set_status(created.shipment_id, "delivered")
        fake_redis.eval.reset_mock()

        with pytest.raises(TerminalStateViolation):
            await service.report_location(
                created.shipment_id, "Chicago", CHICAGO.coordinates
            )
        fake_redis.eval.assert_awaited_once()
