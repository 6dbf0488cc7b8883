"""
Test doubles: throwaway SQLite stores and a fake for every upstream the
intake app talks to (claim counter, HubSpot, Brevo).
"""

import json

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from counter_service.database import Base

VALID_VIN = "4M8BT1612RA000123"

COUNTER_URL = "http://counter.test"
HUBSPOT_URL = "https://hubspot.test"
BREVO_URL = "https://brevo.test/v3/smtp/email"


def make_engine(db_path) -> AsyncEngine:
    return create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


class FakeUpstreams:
    """``httpx.MockTransport`` handler that records calls and answers like the real APIs."""

    def __init__(self, next_claim_number: int = 100001) -> None:
        self.requests: list[httpx.Request] = []
        self.next_claim_number = next_claim_number
        self.counter_status = 200
        self.existing_contact_id: str | None = None
        self.ticket_status = 201
        self.files_status = 201
        self.email_status = 201
        self._file_seq = 0

    # -- inspection ----------------------------------------------------------

    def calls(self, host: str, method: str | None = None, path: str | None = None):
        return [
            r
            for r in self.requests
            if r.url.host == host
            and (method is None or r.method == method)
            and (path is None or r.url.path == path)
        ]

    @property
    def counter_calls(self):
        return self.calls("counter.test")

    @property
    def hubspot_calls(self):
        return self.calls("hubspot.test")

    @property
    def email_calls(self):
        return self.calls("brevo.test")

    # -- handler -------------------------------------------------------------

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host == "counter.test":
            return self._counter(request)
        if host == "hubspot.test":
            return self._hubspot(request)
        if host == "brevo.test":
            return httpx.Response(self.email_status, json={"messageId": "<msg-1@brevo>"})
        return httpx.Response(404)

    def _counter(self, request: httpx.Request) -> httpx.Response:
        if request.method != "POST" or request.url.path != "/next":
            return httpx.Response(404, text="Not found")
        if self.counter_status != 200:
            return httpx.Response(
                self.counter_status, json={"detail": "Claim counter storage unavailable"}
            )
        n = self.next_claim_number
        self.next_claim_number += 1
        return httpx.Response(200, json={"n": n})

    def _hubspot(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path

        if (method, path) == ("POST", "/crm/v3/objects/contacts/search"):
            results = [{"id": self.existing_contact_id}] if self.existing_contact_id else []
            return httpx.Response(200, json={"results": results})
        if (method, path) == ("POST", "/crm/v3/objects/contacts"):
            return httpx.Response(201, json={"id": "501"})
        if (method, path) == ("POST", "/crm/v3/objects/tickets"):
            if self.ticket_status >= 400:
                return httpx.Response(
                    self.ticket_status, json={"status": "error", "message": "Property invalid"}
                )
            return httpx.Response(201, json={"id": "901"})
        if method == "PUT" and "/associations/default/" in path:
            return httpx.Response(200, json={})
        if method == "GET" and path.endswith("/associations/company"):
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"toObjectId": 66, "associationTypes": [{"category": "USER_DEFINED", "typeId": 9}]},
                        {"toObjectId": 77, "associationTypes": [{"category": "HUBSPOT_DEFINED", "typeId": 1}]},
                    ]
                },
            )
        if (method, path) == ("POST", "/files/v3/files"):
            if self.files_status >= 400:
                return httpx.Response(self.files_status, json={"message": "File too large"})
            self._file_seq += 1
            return httpx.Response(201, json={"id": f"f-{self._file_seq}"})
        if (method, path) == ("GET", "/crm/v4/associations/notes/tickets/labels"):
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"category": "USER_DEFINED", "typeId": 12},
                        {"category": "HUBSPOT_DEFINED", "typeId": 228},
                    ]
                },
            )
        if (method, path) == ("POST", "/crm/v3/objects/notes"):
            return httpx.Response(201, json={"id": "n-1"})
        return httpx.Response(404, json={"message": f"No route for {method} {path}"})


def json_body(request: httpx.Request) -> dict:
    return json.loads(request.content)
