"""
Ticket and confirmation-email content for an accepted warranty claim.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from html import escape

from app.schemas.submission import WarrantySubmission

_YMD_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def compact_props(props: dict) -> dict:
    """Drop None and blank-string values before sending properties to HubSpot."""
    out = {}
    for key, value in props.items():
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        out[key] = value
    return out


def join_name(first: str | None, last: str | None) -> str:
    return " ".join(part.strip() for part in (first or "", last or "") if part.strip())


def join_address(parts: list[str | None]) -> str:
    return ", ".join(part.strip() for part in parts if part and part.strip())


def trailer_number_from_vin(vin: str) -> str:
    # 10th character + last four of a full VIN
    if vin and len(vin) == 17:
        return vin[9] + vin[13:]
    return vin or ""


def format_ymd_to_mdy(value: str) -> str:
    text = (value or "").strip()
    match = _YMD_RE.match(text)
    if not match:
        return text
    year, month, day = match.groups()
    return f"{month}-{day}-{year}"


def _html_multiline(value: str) -> str:
    return escape(value or "").replace("\n", "<br/>")


# ---------------------------------------------------------------------------
# Claim view
# ---------------------------------------------------------------------------


@dataclass
class DealerInfo:
    name: str
    contact_name: str
    email: str
    phone: str
    address: str


@dataclass
class ClaimDetails:
    """Everything the ticket and email need about one accepted claim."""

    claim_number: int
    vin: str
    trailer_number: str
    dealer: DealerInfo
    customer_name: str
    date_of_occurrence: str
    warranty_symptoms: str
    warranty_request: str
    labor_hours: str
    attachment_file_names: list[str] = field(default_factory=list)

    @classmethod
    def from_submission(
        cls,
        claim_number: int,
        sub: WarrantySubmission,
        attachment_file_names: list[str] | None = None,
    ) -> "ClaimDetails":
        return cls(
            claim_number=claim_number,
            vin=sub.vin,
            trailer_number=trailer_number_from_vin(sub.vin),
            dealer=DealerInfo(
                name=sub.dealer_name,
                contact_name=join_name(sub.dealer_first_name, sub.dealer_last_name),
                email=sub.dealer_email,
                phone=sub.dealer_phone,
                address=join_address(
                    [
                        sub.dealer_address,
                        sub.dealer_city,
                        sub.dealer_region,
                        sub.dealer_postal_code,
                        sub.dealer_country,
                    ]
                ),
            ),
            customer_name=join_name(sub.customer_first_name, sub.customer_last_name),
            date_of_occurrence=sub.date_of_occurrence,
            warranty_symptoms=sub.warranty_symptoms,
            warranty_request=sub.warranty_request,
            labor_hours=sub.labor_hours,
            attachment_file_names=list(attachment_file_names or []),
        )


# ---------------------------------------------------------------------------
# Ticket
# ---------------------------------------------------------------------------


def build_ticket_subject(claim: ClaimDetails) -> str:
    dealer_label = claim.dealer.name or claim.dealer.contact_name or "Dealer"
    return f"Warranty Claim #{claim.claim_number} - {dealer_label} - {claim.trailer_number}"


def build_ticket_content(claim: ClaimDetails) -> str:
    lines = [
        "Warranty intake via website dealer form.",
        "",
        f"Claim #: {claim.claim_number}",
        f"VIN: {claim.vin}",
        "",
        "=== Dealer Information ===",
        f"Dealership: {claim.dealer.name or 'N/A'}",
        f"Dealer Contact: {claim.dealer.contact_name or 'N/A'}",
        f"Email: {claim.dealer.email or 'N/A'}",
        f"Phone: {claim.dealer.phone or 'N/A'}",
        f"Address: {claim.dealer.address or 'N/A'}",
        "",
        "=== Customer Information ===",
        f"Name: {claim.customer_name or 'N/A'}",
        "",
        "=== Warranty Claim Information ===",
        f"Date of Occurrence: {claim.date_of_occurrence or 'N/A'}",
        "Warranty Symptoms:",
        claim.warranty_symptoms or "N/A",
        "Warranty Request:",
        claim.warranty_request or "N/A",
    ]
    if claim.labor_hours:
        lines.append(f"Labor Hours: {claim.labor_hours}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Confirmation email
# ---------------------------------------------------------------------------


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str


def build_confirmation_email(
    claim: ClaimDetails,
    logo_url: str = "",
    submitted_on: date | None = None,
) -> EmailMessage:
    submitted_on = submitted_on or datetime.now(timezone.utc).date()
    submitted = format_ymd_to_mdy(submitted_on.isoformat())
    occurred = format_ymd_to_mdy(claim.date_of_occurrence)
    n = claim.claim_number
    trailer = claim.trailer_number
    dealer = claim.dealer

    if trailer:
        subject = f"Boatmate Warranty Claim #{n} Received for {trailer}"
    else:
        subject = f"Boatmate Warranty Claim #{n} Received"

    html_parts = []
    if logo_url:
        html_parts.append(
            f'<p><img src="{escape(logo_url)}" alt="Boatmate Trailers" '
            'style="max-width:200px;height:auto;" /></p>'
        )

    trailer_html = f"Trailer #: {escape(trailer)}<br/>" if trailer else ""
    labor_html = f"<br/>Labor Hours: {escape(claim.labor_hours)}" if claim.labor_hours else ""

    html_parts.extend(
        [
            "<p>Hello,</p>",
            "<p>This message confirms receipt of your Boatmate warranty claim submission. "
            "The details below reflect the information received at the time of submission "
            "and are provided for your records.</p>",
            "<p>Our warranty team will review the claim and contact you if additional "
            "information or documentation is required. Receipt of this submission does not "
            "constitute approval or denial of coverage.</p>",
            f"<p>Please reference <strong>Claim #{n}</strong> in all future correspondence "
            "regarding this claim.</p>",
            "<p>Sincerely,<br>Boatmate Warranty Team</p>",
            "<p><strong>Claim Summary</strong><br/>"
            f"Claim #: {n}<br/>"
            f"{trailer_html}"
            f"VIN: {escape(claim.vin)}<br/>"
            f"Date Submitted: {escape(submitted)}</p>",
            "<p><strong>Dealer Information</strong><br/>"
            f"Dealership: {escape(dealer.name)}<br/>"
            f"Contact: {escape(dealer.contact_name)}<br/>"
            f"Email: {escape(dealer.email)}<br/>"
            f"Phone: {escape(dealer.phone)}<br/>"
            f"Address: {escape(dealer.address)}</p>",
            "<p><strong>Customer Information</strong><br/>"
            f"Name: {escape(claim.customer_name)}</p>",
            "<p><strong>Warranty Claim Details</strong><br/>"
            f"Date of Occurrence: {escape(occurred)}<br/>"
            f"Warranty Symptoms: {_html_multiline(claim.warranty_symptoms)}<br/>"
            f"Warranty Request: {_html_multiline(claim.warranty_request)}"
            f"{labor_html}</p>",
        ]
    )

    if claim.attachment_file_names:
        items = "".join(f"<li>{escape(name)}</li>" for name in claim.attachment_file_names)
        html_parts.extend(["<p><strong>Attached Files</strong></p>", f"<ul>{items}</ul>"])
    else:
        html_parts.append("<p><strong>Attached Files</strong><br/>None</p>")

    text_lines = [
        "Thanks for submitting your Boatmate warranty request.",
        "This email is your record of the information we received. "
        "It is not an approval or denial of coverage.",
        "",
        "Our team will review the claim and follow up with next steps.",
        f"Please reference Claim #{n} in any future communication.",
        "",
        "Claim Summary",
        f"Claim #: {n}",
        f"Trailer #: {trailer}" if trailer else "Trailer #: N/A",
        f"VIN: {claim.vin}",
        f"Date Submitted: {submitted}",
        "",
        "Dealer Information",
        f"Dealership: {dealer.name}",
        f"Contact: {dealer.contact_name}",
        f"Email: {dealer.email}",
        f"Phone: {dealer.phone}",
        f"Address: {dealer.address}",
        "",
        "Customer Information",
        f"Name: {claim.customer_name}",
        "",
        "Warranty Claim Details",
        f"Date of Occurrence: {occurred}",
        f"Warranty Symptoms: {claim.warranty_symptoms}",
        f"Warranty Request: {claim.warranty_request}",
    ]
    if claim.labor_hours:
        text_lines.append(f"Labor Hours: {claim.labor_hours}")
    if claim.attachment_file_names:
        text_lines.append("Attached Files:")
        text_lines.extend(f"* {name}" for name in claim.attachment_file_names)
    else:
        text_lines.append("Attached Files: None")

    return EmailMessage(
        to=dealer.email,
        subject=subject,
        html="\n".join(html_parts),
        text="\n".join(text_lines),
    )
