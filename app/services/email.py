"""
Confirmation email delivery through the Brevo transactional email API.
"""

import logging

import httpx

from app.services.content import EmailMessage

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Brevo rejected the message or could not be reached."""


def build_brevo_payload(
    message: EmailMessage,
    from_email: str,
    from_name: str = "",
    reply_to: str = "",
) -> dict:
    sender = {"email": from_email}
    if from_name:
        sender["name"] = from_name

    payload = {
        "sender": sender,
        "to": [{"email": message.to}],
        "subject": message.subject,
        "htmlContent": message.html,
        "textContent": message.text,
    }
    if reply_to:
        payload["replyTo"] = {"email": reply_to}
    return payload


async def send_email(
    http: httpx.AsyncClient,
    message: EmailMessage,
    *,
    endpoint: str,
    api_key: str,
    from_email: str,
    from_name: str = "",
    reply_to: str = "",
) -> None:
    if not api_key or not from_email:
        raise EmailDeliveryError("Missing EMAIL_API_KEY or FROM_EMAIL for Brevo.")

    payload = build_brevo_payload(message, from_email, from_name, reply_to)
    try:
        response = await http.post(
            endpoint,
            json=payload,
            headers={"api-key": api_key},
        )
    except httpx.HTTPError as exc:
        raise EmailDeliveryError(f"Brevo unreachable: {exc}") from exc

    if not response.is_success:
        raise EmailDeliveryError(
            f"Brevo send failed {response.status_code}: {response.text[:300]}"
        )

    logger.debug("Confirmation email accepted by Brevo", extra={"to": message.to})
