"""
Client for the claim counter service.

Exactly one POST per accepted submission. A failed call is never retried here
and a number is never made up locally: the caller fails the whole submission.
"""

import logging

import httpx
from opentelemetry.propagate import inject
from pydantic import ValidationError

from shared.schemas import ClaimNumberResponse

logger = logging.getLogger(__name__)


class ClaimNumberUnavailableError(Exception):
    """The counter service did not return a claim number."""


async def next_claim_number(http: httpx.AsyncClient, base_url: str, request_id: str) -> int:
    headers = {"X-Request-ID": request_id}
    inject(headers)

    try:
        response = await http.post(f"{base_url.rstrip('/')}/next", headers=headers)
    except httpx.HTTPError as exc:
        raise ClaimNumberUnavailableError(f"Claim counter unreachable: {exc}") from exc

    if response.status_code != httpx.codes.OK:
        raise ClaimNumberUnavailableError(
            f"Claim counter returned HTTP {response.status_code}: {response.text[:300]}"
        )

    try:
        payload = ClaimNumberResponse.model_validate_json(response.content)
    except ValidationError as exc:
        raise ClaimNumberUnavailableError("Claim counter returned invalid payload") from exc

    return payload.n
