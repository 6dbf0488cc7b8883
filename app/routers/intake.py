import logging

import httpx
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from app.config import settings
from app.metrics import SUBMISSIONS
from app.schemas.intake import IntakeAck, IntakeErrorResponse
from app.schemas.submission import Attachment, WarrantySubmission
from app.services import intake_service
from app.services.claim_numbers import ClaimNumberUnavailableError

router = APIRouter()
logger = logging.getLogger(__name__)


class InvalidBodyError(ValueError):
    pass


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def _error(errors: list[str], status_code: int) -> JSONResponse:
    return JSONResponse(
        IntakeErrorResponse(errors=errors).model_dump(), status_code=status_code
    )


async def _collect_attachments(uploads: list) -> tuple[list[Attachment], list[str]]:
    """Read ``attachments`` uploads, stopping at the first limit breach."""
    attachments: list[Attachment] = []
    errors: list[str] = []
    max_mb = settings.max_attachment_size_bytes // (1024 * 1024)

    for upload in uploads:
        if not isinstance(upload, UploadFile):
            continue

        if len(attachments) >= settings.max_attachment_files:
            errors.append(
                f"Too many attachments. Maximum is {settings.max_attachment_files} "
                "files per submission."
            )
            break

        too_large = (
            f'Attachment "{upload.filename}" is too large. '
            f"Maximum size is {max_mb} MB per file."
        )
        # Size is known once the form is parsed; never buffer an oversized file
        if upload.size is not None and upload.size > settings.max_attachment_size_bytes:
            errors.append(too_large)
            break

        content = await upload.read()
        if len(content) > settings.max_attachment_size_bytes:
            errors.append(too_large)
            break

        attachments.append(
            Attachment(
                filename=upload.filename or "",
                content_type=upload.content_type or "application/octet-stream",
                content=content,
            )
        )
    return attachments, errors


async def _parse_body(
    request: Request,
) -> tuple[WarrantySubmission, list[Attachment], list[str]]:
    content_type = request.headers.get("content-type", "").lower()
    try:
        if "application/json" in content_type:
            try:
                body = await request.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                raise InvalidBodyError("JSON body must be an object")
            return WarrantySubmission.from_mapping(body), [], []

        form = await request.form()
        submission = WarrantySubmission.from_mapping(form)
        attachments, errors = await _collect_attachments(form.getlist("attachments"))
        return submission, attachments, errors
    except InvalidBodyError:
        raise
    except Exception as exc:
        raise InvalidBodyError(str(exc)) from exc


@router.post("", status_code=status.HTTP_200_OK)
async def submit_warranty_claim(
    request: Request,
    http: httpx.AsyncClient = Depends(get_http_client),
) -> JSONResponse:
    request_id = _request_id(request)

    try:
        submission, attachments, attachment_errors = await _parse_body(request)
    except InvalidBodyError as exc:
        SUBMISSIONS.labels("invalid_body").inc()
        logger.error("Invalid request body", extra={"request_id": request_id, "error": str(exc)})
        return _error(["Invalid request body"], status.HTTP_400_BAD_REQUEST)

    if submission.honeypot:
        SUBMISSIONS.labels("honeypot").inc()
        logger.warning(
            "Honeypot triggered; dropping submission",
            extra={
                "request_id": request_id,
                "vin": submission.vin,
                "dealer_email": submission.dealer_email,
            },
        )
        return JSONResponse(IntakeAck(message="Submitted.").model_dump())

    logger.info(
        "Received warranty submission",
        extra={
            "request_id": request_id,
            "vin": submission.vin,
            "attachment_count": len(attachments),
        },
    )

    try:
        result = await intake_service.submit_claim(
            http, submission, attachments, attachment_errors, request_id
        )
    except intake_service.SubmissionRejected as exc:
        return _error(exc.errors, status.HTTP_400_BAD_REQUEST)
    except ClaimNumberUnavailableError as exc:
        SUBMISSIONS.labels("counter_unavailable").inc()
        logger.error(
            "Claim number generation failed",
            extra={"request_id": request_id, "error": str(exc)},
        )
        return _error(["Unable to generate claim number"], status.HTTP_500_INTERNAL_SERVER_ERROR)

    return JSONResponse(result.model_dump(mode="json", by_alias=True))
