from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class EmailStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class IntakeResponse(BaseModel):
    """Success body returned to the dealer form (camelCase on the wire)."""

    ok: bool = True
    claim_number: int
    ref: str
    contact_id: str | None = None
    ticket_id: str | None = None
    note_id: str | None = None
    email_status: EmailStatus = EmailStatus.SKIPPED
    message: str
    ticket_error: str | None = None
    attachment_file_names: list[str] = []
    attachment_file_ids: list[str] = []
    attachments_error: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IntakeAck(BaseModel):
    ok: bool = True
    message: str


class IntakeErrorResponse(BaseModel):
    ok: bool = False
    errors: list[str]
