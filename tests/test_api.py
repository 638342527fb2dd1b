"""
Integration tests for the REST API endpoints.

Runs the real app against an in-memory SQLite database; the Redis client
is replaced through ``dependency_overrides`` (see ``conftest.client``).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

NEW_SHIPMENT = {
    "container_id": "CONT-42",
    "current_location": {
        "name": "New York",
        "coordinates": {"latitude": 40.7128, "longitude": -74.0060},
    },
    "destination": {
        "name": "LA",
        "coordinates": {"latitude": 34.0522, "longitude": -118.2437},
    },
    "cargo": "X",
    "weight": 10,
}


def _parse(ts: str) -> datetime:
    value = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def _create(client: AsyncClient, **overrides) -> dict:
    resp = await client.post("/api/v1/shipments", json={**NEW_SHIPMENT, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert "timestamp" in resp.json()


@pytest.mark.asyncio
async def test_create_shipment(client: AsyncClient):
    before = datetime.now(timezone.utc)
    data = await _create(client)

    assert data["status"] == "pending"
    assert data["shipment_id"].startswith("SH")
    assert len(data["id"]) == 24
    assert len(data["route"]) == 1
    assert data["route"][0]["distance_covered"] == 0.0
    assert data["current_location"]["name"] == "New York"

    eta_hours = (_parse(data["estimated_arrival"]) - before) / timedelta(hours=1)
    assert eta_hours == pytest.approx(78.7, abs=0.1)


@pytest.mark.asyncio
async def test_create_rejects_out_of_range_coordinates(client: AsyncClient):
    body = {
        **NEW_SHIPMENT,
        "destination": {"name": "Nowhere", "coordinates": {"latitude": 95, "longitude": 0}},
    }
    resp = await client.post("/api/v1/shipments", json=body)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_create_requires_weight(client: AsyncClient):
    body = {k: v for k, v in NEW_SHIPMENT.items() if k != "weight"}
    resp = await client.post("/api/v1/shipments", json=body)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_by_either_identifier(client: AsyncClient):
    created = await _create(client)

    by_public = await client.get(f"/api/v1/shipments/{created['shipment_id']}")
    by_storage = await client.get(f"/api/v1/shipments/{created['id']}")

    assert by_public.status_code == 200
    assert by_storage.status_code == 200
    assert by_public.json()["id"] == by_storage.json()["id"] == created["id"]


@pytest.mark.asyncio
async def test_get_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/shipments/SH0000")
    assert resp.status_code == 404
    assert "detail" in resp.json()


@pytest.mark.asyncio
async def test_report_location_in_transit(client: AsyncClient):
    created = await _create(client)
    resp = await client.post(
        f"/api/v1/shipments/{created['shipment_id']}/location",
        json={"name": "Chicago", "coordinates": {"latitude": 41.8781, "longitude": -87.6298}},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "in-transit"
    assert len(data["route"]) == 2
    assert data["is_at_destination"] is False
    assert data["total_distance_covered"] == pytest.approx(
        data["route"][1]["distance_covered"]
    )
    assert data["distance_to_destination"] > 5


@pytest.mark.asyncio
async def test_report_location_at_destination(client: AsyncClient):
    created = await _create(client)
    resp = await client.post(
        f"/api/v1/shipments/{created['id']}/location",
        json={"name": "LA", "coordinates": {"latitude": 34.0522, "longitude": -118.2437}},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "delivered"
    assert data["is_at_destination"] is True
    assert data["distance_to_destination"] == 0.0
    assert _parse(data["estimated_arrival"]) == _parse(data["current_location"]["timestamp"])


@pytest.mark.asyncio
async def test_report_location_after_delivery_conflicts(client: AsyncClient):
    created = await _create(client)
    url = f"/api/v1/shipments/{created['shipment_id']}/location"
    await client.post(
        url,
        json={"name": "LA", "coordinates": {"latitude": 34.0522, "longitude": -118.2437}},
    )
    resp = await client.post(
        url,
        json={"name": "Denver", "coordinates": {"latitude": 39.7392, "longitude": -104.9903}},
    )
    assert resp.status_code == 409
    assert "delivered" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_report_location_requires_coordinates(client: AsyncClient):
    created = await _create(client)
    resp = await client.post(
        f"/api/v1/shipments/{created['shipment_id']}/location",
        json={"name": "Chicago"},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_report_location_while_locked(client: AsyncClient, fake_redis):
    created = await _create(client)
    fake_redis.set.return_value = False
    resp = await client.post(
        f"/api/v1/shipments/{created['shipment_id']}/location",
        json={"name": "Chicago", "coordinates": {"latitude": 41.8781, "longitude": -87.6298}},
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_eta_summary(client: AsyncClient):
    created = await _create(client)
    resp = await client.get(f"/api/v1/shipments/{created['shipment_id']}/eta")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "pending"
    assert data["progress_percentage"] == 0
    assert data["total_distance_covered"] == 0.0
    assert data["distance_remaining"] == pytest.approx(3936, abs=1)
    assert data["destination"]["name"] == "LA"
    assert data["is_at_destination"] is False


@pytest.mark.asyncio
async def test_eta_not_found(client: AsyncClient):
    resp = await client.get(f"/api/v1/shipments/{'a' * 24}/eta")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_set_status_delayed_keeps_eta(client: AsyncClient):
    created = await _create(client)
    moved = await client.post(
        f"/api/v1/shipments/{created['shipment_id']}/location",
        json={"name": "Chicago", "coordinates": {"latitude": 41.8781, "longitude": -87.6298}},
    )
    resp = await client.put(
        f"/api/v1/shipments/{created['shipment_id']}/status",
        json={"status": "delayed"},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "delayed"
    assert _parse(resp.json()["estimated_arrival"]) == _parse(
        moved.json()["estimated_arrival"]
    )


@pytest.mark.asyncio
async def test_set_status_invalid(client: AsyncClient):
    created = await _create(client)
    resp = await client.put(
        f"/api/v1/shipments/{created['shipment_id']}/status",
        json={"status": "lost"},
    )
    assert resp.status_code == 400
    assert "Must be one of" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_update_details(client: AsyncClient):
    created = await _create(client)
    resp = await client.put(
        f"/api/v1/shipments/{created['id']}",
        json={"cargo": "Copper", "weight": 12.5},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["cargo"] == "Copper"
    assert data["weight"] == 12.5
    assert data["container_id"] == created["container_id"]
    assert data["status"] == "pending"


@pytest.mark.asyncio
async def test_delete_shipment(client: AsyncClient):
    created = await _create(client)
    resp = await client.delete(f"/api/v1/shipments/{created['shipment_id']}")
    assert resp.status_code == 200
    assert resp.json() == {"id": created["id"], "shipment_id": created["shipment_id"]}

    assert (await client.get(f"/api/v1/shipments/{created['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_list_filters_by_status(client: AsyncClient):
    pending = await _create(client, container_id="CONT-1")
    moving = await _create(client, container_id="CONT-2")
    await client.post(
        f"/api/v1/shipments/{moving['shipment_id']}/location",
        json={"name": "Chicago", "coordinates": {"latitude": 41.8781, "longitude": -87.6298}},
    )

    resp = await client.get("/api/v1/shipments", params={"status": "pending"})
    assert resp.status_code == 200
    assert [s["id"] for s in resp.json()] == [pending["id"]]

    everything = await client.get("/api/v1/shipments")
    assert len(everything.json()) == 2


@pytest.mark.asyncio
async def test_list_rejects_unknown_sort_field(client: AsyncClient):
    resp = await client.get("/api/v1/shipments", params={"sort_by": "secret"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient):
    resp = await client.options(
        "/api/v1/shipments",
        headers={
            "Origin": "http://dashboard.example",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
    assert "POST" in resp.headers["access-control-allow-methods"]


@pytest.mark.asyncio
async def test_rate_limit_follows_app_settings(database, fake_redis):
    from shipment_tracker.api.app import create_app
    from shipment_tracker.api.dependencies import get_redis
    from shipment_tracker.api.middleware import limiter
    from shipment_tracker.config import Settings

    limiter.reset()
    app = create_app(Settings(rate_limit="2/minute"), database=database)
    app.dependency_overrides[get_redis] = lambda: fake_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        codes = [(await ac.get("/api/v1/shipments")).status_code for _ in range(3)]

    assert codes == [200, 200, 429]
