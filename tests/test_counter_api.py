"""
Tests for the claim counter HTTP surface (POST /next, GET /health).
"""

import asyncio

import httpx
import pytest
import pytest_asyncio
from doubles import make_engine
from sqlalchemy.ext.asyncio import async_sessionmaker

from counter_service.counter import ClaimCounter
from counter_service.main import app


@pytest_asyncio.fixture
async def client(session_factory):
    app.state.counter = ClaimCounter(session_factory, name="global", baseline=100000)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://counter.test") as client:
        yield client


@pytest.mark.asyncio
async def test_next_returns_sequential_numbers(client):
    first = await client.post("/next")
    second = await client.post("/next")

    assert first.status_code == 200
    assert first.json() == {"n": 100001}
    assert second.json() == {"n": 100002}


@pytest.mark.asyncio
async def test_concurrent_requests_get_distinct_numbers(client):
    responses = await asyncio.gather(*(client.post("/next") for _ in range(5)))

    assert all(r.status_code == 200 for r in responses)
    assert sorted(r.json()["n"] for r in responses) == [100001, 100002, 100003, 100004, 100005]


@pytest.mark.asyncio
async def test_next_only_accepts_post(client):
    response = await client.get("/next")

    assert response.status_code == 405


@pytest.mark.asyncio
async def test_health_reports_persisted_value(client):
    await client.post("/next")

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "counter": "global", "value": 100001}


@pytest.mark.asyncio
async def test_storage_unavailable_maps_to_503(tmp_path):
    engine = make_engine(tmp_path / "missing-dir" / "claims.db")
    app.state.counter = ClaimCounter(async_sessionmaker(engine), name="global", baseline=100000)
    try:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://counter.test") as client:
            allocate = await client.post("/next")
            health = await client.get("/health")
    finally:
        await engine.dispose()

    assert allocate.status_code == 503
    assert allocate.json() == {"detail": "Claim counter storage unavailable"}
    assert "n" not in allocate.json()
    assert health.status_code == 503
