from __future__ import annotations

import logging
from typing import Iterable

import requests
from flask import current_app

from ..errors import ServiceError
from .validation import normalise_phone

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com/v19.0/{phone_number_id}/messages"


def _api_url() -> str:
    cfg = current_app.config
    api_url = cfg.get("WHATSAPP_API_URL")
    if api_url:
        return api_url
    phone_number_id = cfg.get("WHATSAPP_PHONE_NUMBER_ID")
    if not (cfg.get("WHATSAPP_TOKEN") and phone_number_id):
        raise ServiceError("WhatsApp delivery is not configured.", status_code=503)
    return GRAPH_API_URL.format(phone_number_id=phone_number_id)


def send_whatsapp_template(phone: str, template: str, parameters: Iterable[str] = (),
                           language: str = "en") -> None:
    """Send a pre-approved template message through the WhatsApp Cloud API.

    Raises ``ServiceError`` carrying the provider's message when the request
    fails, so callers can show it to the user as-is.
    """
    cfg = current_app.config
    recipient = normalise_phone(phone, cfg.get("WHATSAPP_DEFAULT_COUNTRY_CODE", "91"))
    if not recipient:
        raise ServiceError("A phone number is required to send a WhatsApp message.")

    body_params = [{"type": "text", "text": str(value)} for value in parameters]
    payload = {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": recipient,
        "type": "template",
        "template": {
            "name": template,
            "language": {"code": language},
            "components": [
                {"type": "body", "parameters": body_params},
                {
                    "type": "button",
                    "sub_type": "url",
                    "index": "0",
                    "parameters": body_params[:1],
                },
            ],
        },
    }
    headers = {"Content-Type": "application/json"}
    token = cfg.get("WHATSAPP_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"

    try:
        resp = requests.post(_api_url(), json=payload, headers=headers,
                             timeout=cfg.get("WHATSAPP_TIMEOUT_SECONDS", 10))
    except requests.RequestException as exc:
        logger.exception("WhatsApp send failure: %s", exc)
        raise ServiceError("Could not reach the messaging service. Please try again.",
                           status_code=502) from exc

    if resp.status_code >= 400:
        logger.warning("WhatsApp API error %s: %s", resp.status_code, resp.text)
        try:
            message = resp.json().get("error", {}).get("message")
        except ValueError:
            message = None
        raise ServiceError(message or "Failed to send the verification code.", status_code=502)
