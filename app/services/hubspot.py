"""
Minimal HubSpot CRM client for warranty intake: contacts, tickets,
associations, private file uploads and attachment notes.
"""

import json
import logging
from datetime import datetime, timezone

import httpx

from app.schemas.submission import Attachment

logger = logging.getLogger(__name__)

# HubSpot's own "primary" contact-to-company association type
_PRIMARY_COMPANY_TYPE_ID = 1


class HubSpotError(Exception):
    """Any failed HubSpot API call."""


def _json_or_empty(response: httpx.Response) -> dict:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class HubSpotClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        token: str,
        base_url: str = "https://api.hubapi.com",
        files_folder_path: str = "/warranty-intake",
    ) -> None:
        self._http = http
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._files_folder_path = files_folder_path
        self._note_ticket_type_id: int | None = None

    @property
    def configured(self) -> bool:
        return bool(self._token)

    def _auth_headers(self) -> dict[str, str]:
        if not self._token:
            raise HubSpotError("HUBSPOT_TOKEN missing")
        return {"Authorization": f"Bearer {self._token}"}

    async def request(self, method: str, path: str, body: dict | None = None) -> dict:
        headers = self._auth_headers()
        try:
            response = await self._http.request(
                method, f"{self._base_url}{path}", json=body, headers=headers
            )
        except httpx.HTTPError as exc:
            raise HubSpotError(f"HubSpot unreachable: {exc}") from exc

        data = _json_or_empty(response)
        if not response.is_success:
            code = data.get("status") or response.status_code
            message = data.get("message") or data.get("error") or f"HTTP {response.status_code}"
            raise HubSpotError(f"HubSpot {code}: {message}")
        return data

    # -- Contacts ------------------------------------------------------------

    async def find_contact_by_email(self, email: str) -> str | None:
        body = {
            "filterGroups": [
                {"filters": [{"propertyName": "email", "operator": "EQ", "value": email.lower()}]}
            ],
            "properties": ["email"],
            "limit": 1,
        }
        res = await self.request("POST", "/crm/v3/objects/contacts/search", body)
        results = res.get("results") or []
        return str(results[0]["id"]) if results else None

    async def create_contact(self, props: dict) -> str | None:
        res = await self.request("POST", "/crm/v3/objects/contacts", {"properties": props})
        return str(res["id"]) if res.get("id") else None

    async def upsert_contact(self, email: str, props: dict) -> str:
        if not email:
            raise HubSpotError("Email required for contact upsert")

        existing_id = await self.find_contact_by_email(email)
        if existing_id:
            return existing_id

        contact_id = await self.create_contact({**props, "email": email.lower()})
        if not contact_id:
            raise HubSpotError("Failed to create contact")
        return contact_id

    # -- Tickets -------------------------------------------------------------

    async def create_ticket(self, props: dict) -> str | None:
        res = await self.request("POST", "/crm/v3/objects/tickets", {"properties": props})
        return str(res["id"]) if res.get("id") else None

    async def associate_ticket_to_contact(self, ticket_id: str, contact_id: str) -> None:
        await self.request(
            "PUT",
            f"/crm/v4/objects/ticket/{ticket_id}/associations/default/contact/{contact_id}",
        )

    async def get_primary_company_id(self, contact_id: str) -> str | None:
        res = await self.request("GET", f"/crm/v4/objects/contact/{contact_id}/associations/company")
        results = res.get("results") or []
        if not results:
            return None

        picked = next(
            (
                r
                for r in results
                if any(
                    t.get("category") == "HUBSPOT_DEFINED"
                    and t.get("typeId") == _PRIMARY_COMPANY_TYPE_ID
                    for t in r.get("associationTypes") or []
                )
            ),
            results[0],
        )
        company_id = picked.get("toObjectId")
        return str(company_id) if company_id else None

    async def associate_ticket_to_company(self, ticket_id: str, company_id: str) -> None:
        await self.request(
            "PUT",
            f"/crm/v4/objects/ticket/{ticket_id}/associations/default/company/{company_id}",
        )

    # -- Files + notes -------------------------------------------------------

    async def upload_file(self, attachment: Attachment) -> str | None:
        """Upload as a PRIVATE file. Returns the HubSpot file id."""
        headers = self._auth_headers()
        try:
            response = await self._http.post(
                f"{self._base_url}/files/v3/files",
                headers=headers,
                data={
                    "options": json.dumps({"access": "PRIVATE"}),
                    "folderPath": self._files_folder_path,
                },
                files={
                    "file": (
                        attachment.filename or "attachment",
                        attachment.content,
                        attachment.content_type or "application/octet-stream",
                    )
                },
            )
        except httpx.HTTPError as exc:
            raise HubSpotError(f"HubSpot Files unreachable: {exc}") from exc

        data = _json_or_empty(response)
        if not response.is_success:
            message = data.get("message") or response.text[:300]
            raise HubSpotError(f"HubSpot Files {response.status_code}: {message}")
        return str(data["id"]) if data.get("id") else None

    async def note_ticket_association_type_id(self) -> int:
        if self._note_ticket_type_id is not None:
            return self._note_ticket_type_id

        res = await self.request("GET", "/crm/v4/associations/notes/tickets/labels")
        results = res.get("results") or []
        if not results:
            raise HubSpotError("No association labels returned for notes<->tickets")

        label = next((r for r in results if r.get("category") == "HUBSPOT_DEFINED"), results[0])
        type_id = label.get("typeId") or label.get("associationTypeId")
        if not isinstance(type_id, int):
            raise HubSpotError("No numeric typeId/associationTypeId found for notes<->tickets")

        self._note_ticket_type_id = type_id
        return type_id

    async def create_note_with_attachments(
        self,
        ticket_id: str,
        claim_number: int,
        file_ids: list[str],
        vin: str,
    ) -> str | None:
        if not file_ids:
            raise HubSpotError("fileIds required")

        type_id = await self.note_ticket_association_type_id()
        body = {
            "properties": {
                "hs_timestamp": datetime.now(timezone.utc).isoformat(),
                "hs_note_body": (
                    "Warranty attachments uploaded via dealer intake form for "
                    f"Claim #{claim_number} (VIN {vin})."
                ),
                "hs_attachment_ids": ";".join(file_ids),
            },
            "associations": [
                {
                    "to": {"id": ticket_id},
                    "types": [
                        {"associationCategory": "HUBSPOT_DEFINED", "associationTypeId": type_id}
                    ],
                }
            ],
        }
        res = await self.request("POST", "/crm/v3/objects/notes", body)
        return str(res["id"]) if res.get("id") else None
