import logging

import httpx

from app.config import settings
from app.metrics import DOWNSTREAM_FAILURES, SUBMISSIONS
from app.schemas.intake import EmailStatus, IntakeResponse
from app.schemas.submission import Attachment, WarrantySubmission, validate_dealer_submission
from app.services.claim_numbers import next_claim_number
from app.services.content import (
    ClaimDetails,
    build_confirmation_email,
    build_ticket_content,
    build_ticket_subject,
    compact_props,
)
from app.services.email import EmailDeliveryError, send_email
from app.services.hubspot import HubSpotClient, HubSpotError

logger = logging.getLogger(__name__)

_EMAIL_MESSAGES = {
    EmailStatus.SENT: "Submitted. Confirmation email sent.",
    EmailStatus.FAILED: "Submitted. Email delivery is currently unavailable; we’ll follow up.",
    EmailStatus.SKIPPED: "Submitted. (Email not configured in this environment.)",
}


class SubmissionRejected(ValueError):
    """The submission failed validation. Carries every message for the form."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _contact_props(sub: WarrantySubmission) -> dict:
    return compact_props(
        {
            "email": sub.dealer_email,
            "dealer": sub.dealer_name,
            "dealer_first_name": sub.dealer_first_name,
            "dealer_last_name": sub.dealer_last_name,
            "dealer_address": sub.dealer_address,
            "dealer_city": sub.dealer_city,
            "dealer_state": sub.dealer_region,
            "dealer_zip": sub.dealer_postal_code,
            "dealer_country": sub.dealer_country,
            "dealer_phone": sub.dealer_phone,
            "dealer_email": sub.dealer_email,
            "customer_first_name": sub.customer_first_name,
            "customer_last_name": sub.customer_last_name,
        }
    )


def _ticket_props(sub: WarrantySubmission, claim: ClaimDetails) -> dict:
    return compact_props(
        {
            "hs_pipeline": settings.hs_ticket_pipeline,
            "hs_pipeline_stage": settings.hs_ticket_stage,
            "subject": build_ticket_subject(claim),
            "content": build_ticket_content(claim),
            "trailer_vin": sub.vin,
            "warranty_date_of_occurrence": sub.date_of_occurrence,
            "warranty_symptoms": sub.warranty_symptoms,
            "warranty_request": sub.warranty_request,
            "warranty_labor_hours": sub.labor_hours,
            "hs_file_upload": ", ".join(claim.attachment_file_names),
            "hs_ticket_category": sub.category,
            "claim_submitted_by": sub.claim_submitted_by,
        }
    )


async def _associate(
    hubspot: HubSpotClient, ticket_id: str, contact_id: str, log_extra: dict
) -> None:
    try:
        await hubspot.associate_ticket_to_contact(ticket_id, contact_id)
        logger.info("Associated ticket to contact", extra={**log_extra, "contact_id": contact_id})
    except HubSpotError as exc:
        DOWNSTREAM_FAILURES.labels("association").inc()
        logger.error("Ticket<->contact association failed", extra={**log_extra, "error": str(exc)})

    try:
        company_id = await hubspot.get_primary_company_id(contact_id)
        if company_id:
            await hubspot.associate_ticket_to_company(ticket_id, company_id)
            logger.info(
                "Associated ticket to company", extra={**log_extra, "company_id": company_id}
            )
    except HubSpotError as exc:
        DOWNSTREAM_FAILURES.labels("association").inc()
        logger.error("Ticket<->company association failed", extra={**log_extra, "error": str(exc)})


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def submit_claim(
    http: httpx.AsyncClient,
    sub: WarrantySubmission,
    attachments: list[Attachment],
    attachment_errors: list[str],
    request_id: str,
) -> IntakeResponse:
    """
    Accept one dealer submission.

    Validation runs first so no claim number is spent on a rejected form.
    The claim number is allocated exactly once, before any CRM record is
    written. Failures after that point are reported in the response but do
    not undo the submission.
    """
    # 1. Validate
    errors = validate_dealer_submission(sub)
    if not attachments:
        errors.append("At least one attachment is required.")
    errors.extend(attachment_errors)
    if errors:
        SUBMISSIONS.labels("rejected").inc()
        raise SubmissionRejected(errors)

    # 2. Allocate the claim number (ClaimNumberUnavailableError propagates: fatal)
    claim_number = await next_claim_number(http, settings.counter_service_url, request_id)
    log_extra = {"request_id": request_id, "claim_number": claim_number}
    logger.info("Claim number generated", extra={**log_extra, "vin": sub.vin})

    file_names = [a.filename for a in attachments if a.filename]
    claim = ClaimDetails.from_submission(claim_number, sub, file_names)
    hubspot = HubSpotClient(
        http,
        settings.hubspot_token,
        base_url=settings.hubspot_base_url,
        files_folder_path=settings.hs_files_folder_path,
    )

    # 3. Contact (non-fatal: the ticket can still be created)
    contact_id: str | None = None
    try:
        contact_id = await hubspot.upsert_contact(sub.dealer_email, _contact_props(sub))
        logger.info("HubSpot contact upserted", extra={**log_extra, "contact_id": contact_id})
    except HubSpotError as exc:
        DOWNSTREAM_FAILURES.labels("contact").inc()
        logger.error("HubSpot contact upsert failed", extra={**log_extra, "error": str(exc)})

    # 4. Ticket
    ticket_id: str | None = None
    ticket_error: str | None = None
    try:
        ticket_id = await hubspot.create_ticket(_ticket_props(sub, claim))
        logger.info("HubSpot ticket created", extra={**log_extra, "ticket_id": ticket_id})
    except HubSpotError as exc:
        DOWNSTREAM_FAILURES.labels("ticket").inc()
        ticket_error = str(exc)
        logger.error("HubSpot ticket create failed", extra={**log_extra, "error": ticket_error})

    # 5. Associations
    if ticket_id and contact_id and hubspot.configured:
        await _associate(hubspot, ticket_id, contact_id, {**log_extra, "ticket_id": ticket_id})

    # 6. Attachments -> private files + note on the ticket
    note_id: str | None = None
    file_ids: list[str] = []
    attachments_error: str | None = None
    if ticket_id and attachments and hubspot.configured:
        try:
            for attachment in attachments:
                file_id = await hubspot.upload_file(attachment)
                if file_id:
                    file_ids.append(file_id)
            if file_ids:
                note_id = await hubspot.create_note_with_attachments(
                    ticket_id, claim_number, file_ids, sub.vin
                )
                logger.info("HubSpot attachment note created", extra={**log_extra, "note_id": note_id})
        except HubSpotError as exc:
            DOWNSTREAM_FAILURES.labels("attachments").inc()
            attachments_error = f"HubSpot error: {exc}"
            logger.error(
                "Attachment upload / note create failed", extra={**log_extra, "error": str(exc)}
            )

    # 7. Confirmation email
    email_status = EmailStatus.SKIPPED
    if settings.email_configured:
        message = build_confirmation_email(claim, logo_url=settings.email_logo_url)
        try:
            await send_email(
                http,
                message,
                endpoint=settings.email_api_endpoint,
                api_key=settings.email_api_key,
                from_email=settings.from_email,
                from_name=settings.from_name,
                reply_to=settings.reply_to,
            )
            email_status = EmailStatus.SENT
        except EmailDeliveryError as exc:
            DOWNSTREAM_FAILURES.labels("email").inc()
            email_status = EmailStatus.FAILED
            logger.error("Email send failed", extra={**log_extra, "error": str(exc)})

    SUBMISSIONS.labels("accepted").inc()
    logger.info(
        "Warranty claim accepted",
        extra={**log_extra, "ticket_id": ticket_id, "email_status": email_status.value},
    )

    return IntakeResponse(
        claim_number=claim_number,
        ref=request_id,
        contact_id=contact_id,
        ticket_id=ticket_id,
        note_id=note_id,
        email_status=email_status,
        message=_EMAIL_MESSAGES[email_status],
        ticket_error=ticket_error,
        attachment_file_names=file_names,
        attachment_file_ids=file_ids,
        attachments_error=attachments_error,
    )
