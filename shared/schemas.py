"""
Wire schemas shared between the intake API and the claim counter service.
"""

from pydantic import BaseModel, StrictInt


class ClaimNumberResponse(BaseModel):
    """Body of a successful ``POST /next`` on the counter service."""

    n: StrictInt

    model_config = {"extra": "ignore"}
