"""
Intake app wired to the real claim counter service (in-process ASGI) on a
temporary SQLite store. HubSpot and Brevo stay faked.
"""

import asyncio

import httpx
import pytest
import pytest_asyncio
from doubles import COUNTER_URL, HUBSPOT_URL, FakeUpstreams

from app.config import settings
from app.main import app as intake_app
from app.routers.intake import get_http_client
from counter_service.counter import ClaimCounter
from counter_service.main import app as counter_app


@pytest.fixture
def upstreams():
    return FakeUpstreams()


@pytest_asyncio.fixture
async def client(session_factory, upstreams, monkeypatch):
    monkeypatch.setattr(settings, "counter_service_url", COUNTER_URL)
    monkeypatch.setattr(settings, "hubspot_base_url", HUBSPOT_URL)
    monkeypatch.setattr(settings, "hubspot_token", "pat-test")
    monkeypatch.setattr(settings, "email_enabled", False)

    counter_app.state.counter = ClaimCounter(session_factory, name="global", baseline=100000)
    outbound = httpx.AsyncClient(
        mounts={
            COUNTER_URL: httpx.ASGITransport(app=counter_app),
            "all://": httpx.MockTransport(upstreams),
        }
    )
    intake_app.dependency_overrides[get_http_client] = lambda: outbound
    transport = httpx.ASGITransport(app=intake_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://intake.test") as client:
        yield client
    intake_app.dependency_overrides.clear()
    await outbound.aclose()


def _files():
    return [("attachments", ("hub.jpg", b"jpeg-bytes", "image/jpeg"))]


@pytest.mark.asyncio
async def test_claim_numbers_start_after_baseline(client, valid_fields):
    first = await client.post("/claims", data=valid_fields, files=_files())
    second = await client.post("/claims", data=valid_fields, files=_files())

    assert first.json()["claimNumber"] == 100001
    assert second.json()["claimNumber"] == 100002


@pytest.mark.asyncio
async def test_concurrent_submissions_get_distinct_consecutive_numbers(client, valid_fields):
    responses = await asyncio.gather(
        *(client.post("/claims", data=valid_fields, files=_files()) for _ in range(5))
    )

    assert all(r.status_code == 200 for r in responses)
    numbers = sorted(r.json()["claimNumber"] for r in responses)
    assert numbers == [100001, 100002, 100003, 100004, 100005]


@pytest.mark.asyncio
async def test_rejected_submission_does_not_consume_a_number(client, valid_fields):
    bad = dict(valid_fields, claim_submitted_by="customer")

    rejected = await client.post("/claims", data=bad, files=_files())
    accepted = await client.post("/claims", data=valid_fields, files=_files())

    assert rejected.status_code == 400
    assert accepted.json()["claimNumber"] == 100001
