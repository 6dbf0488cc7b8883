import re
from dataclasses import dataclass

from pydantic import BaseModel, field_validator

_VIN_RE = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_UPPER_FIELDS = ("vin",)
_LOWER_FIELDS = ("claim_submitted_by", "is_sold_unit", "dealer_email")
_HONEYPOT_ALIASES = ("honeypot", "_hp", "website")

_REQUIRED_DEALER_FIELDS = [
    ("dealer_name", "Dealership is required."),
    ("dealer_first_name", "Dealer first name is required."),
    ("dealer_last_name", "Dealer last name is required."),
    ("dealer_address", "Dealer address is required."),
    ("dealer_city", "Dealer city is required."),
    ("dealer_region", "Dealer state/region is required."),
    ("dealer_postal_code", "Dealer postal/ZIP code is required."),
    ("dealer_country", "Dealer country is required."),
    ("dealer_phone", "Dealer phone is required."),
]

_REQUIRED_WARRANTY_FIELDS = [
    ("date_of_occurrence", "Date of occurrence is required."),
    ("warranty_symptoms", "Warranty symptoms are required."),
    ("warranty_request", "Warranty request is required."),
    ("labor_hours", "Warranty labor hours is required."),
]


class WarrantySubmission(BaseModel):
    """A dealer warranty form, normalised. Every field is a trimmed string."""

    vin: str = ""
    category: str = "Warranty"
    claim_submitted_by: str = ""
    is_sold_unit: str = ""
    honeypot: str = ""

    dealer_name: str = ""
    dealer_first_name: str = ""
    dealer_last_name: str = ""
    dealer_address: str = ""
    dealer_city: str = ""
    dealer_region: str = ""
    dealer_postal_code: str = ""
    dealer_country: str = ""
    dealer_phone: str = ""
    dealer_email: str = ""

    # Customer is name-only on the dealer form
    customer_first_name: str = ""
    customer_last_name: str = ""

    date_of_occurrence: str = ""
    warranty_symptoms: str = ""
    warranty_request: str = ""
    labor_hours: str = ""

    model_config = {"extra": "ignore"}

    @field_validator("*", mode="before")
    @classmethod
    def _to_trimmed_str(cls, value, info):
        text = "" if value is None else str(value).strip()
        if info.field_name in _UPPER_FIELDS:
            return text.upper()
        if info.field_name in _LOWER_FIELDS:
            return text.lower()
        return text

    @field_validator("category")
    @classmethod
    def _default_category(cls, value: str) -> str:
        return value or "Warranty"

    @classmethod
    def from_mapping(cls, data) -> "WarrantySubmission":
        """Build from a JSON object or form fields, folding the honeypot aliases."""
        values = {name: data.get(name) for name in cls.model_fields if name != "honeypot"}
        values["honeypot"] = next(
            (str(data.get(alias)).strip() for alias in _HONEYPOT_ALIASES if data.get(alias)),
            "",
        )
        return cls.model_validate(values)


@dataclass
class Attachment:
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def is_valid_vin(vin: str) -> bool:
    return bool(_VIN_RE.match((vin or "").upper()))


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match((email or "").lower()))


def validate_dealer_submission(sub: WarrantySubmission) -> list[str]:
    """Server-side rules for the dealer form. Returns every failing message."""
    errors: list[str] = []

    if sub.claim_submitted_by != "dealer":
        errors.append("claim_submitted_by must be 'dealer'.")

    if not is_valid_vin(sub.vin):
        errors.append("VIN must be 17 chars (no I, O, Q).")

    for field_name, message in _REQUIRED_DEALER_FIELDS:
        if not getattr(sub, field_name):
            errors.append(message)

    if not sub.dealer_email:
        errors.append("Dealer email is required.")
    elif not is_valid_email(sub.dealer_email):
        errors.append("Dealer email is invalid.")

    if sub.is_sold_unit not in ("yes", "no"):
        errors.append('Please select "Yes" or "No" for "Is this a sold unit?"')

    # Customer name only matters for sold units
    if sub.is_sold_unit == "yes":
        if not sub.customer_first_name:
            errors.append("Customer first name is required.")
        if not sub.customer_last_name:
            errors.append("Customer last name is required.")

    for field_name, message in _REQUIRED_WARRANTY_FIELDS:
        if not getattr(sub, field_name):
            errors.append(message)

    return errors
