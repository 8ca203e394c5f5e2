from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import requests

from .config import DEFAULT_SENDGRID_API_URL
from .errors import DeliveryError
from .models import OutboundMessage

LOGGER = logging.getLogger(__name__)


def build_sendgrid_payload(message: OutboundMessage) -> Dict[str, Any]:
    """Translate an outbound message into a SendGrid v3 ``mail/send`` body."""
    return {
        "personalizations": [{"to": [{"email": addr} for addr in message.recipients]}],
        "from": {"email": message.sender.email, "name": message.sender.name},
        "subject": message.subject,
        "content": [
            {"type": "text/plain", "value": message.text},
            {"type": "text/html", "value": message.html},
        ],
    }


def _error_cause(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        messages = [
            str(err.get("message"))
            for err in body.get("errors") or []
            if isinstance(err, dict) and err.get("message")
        ]
        if messages:
            return "; ".join(messages)
    return f"HTTP {resp.status_code}"


class SendGridClient:
    """Single-attempt delivery through the SendGrid HTTP API."""

    def __init__(self, api_url: str = DEFAULT_SENDGRID_API_URL, timeout: Optional[float] = None):
        self.api_url = api_url
        self.timeout = timeout

    def send(self, message: OutboundMessage, api_key: str) -> None:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        payload = build_sendgrid_payload(message)
        try:
            resp = requests.post(
                self.api_url,
                headers=headers,
                data=json.dumps(payload),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            LOGGER.error("SendGrid request failed: %s", exc)
            raise DeliveryError(str(exc)) from exc

        if resp.status_code >= 400:
            cause = _error_cause(resp)
            LOGGER.error("SendGrid responded with %s: %s", resp.status_code, resp.text[:200])
            raise DeliveryError(cause)
        LOGGER.info(
            "SendGrid accepted '%s' for %s (status %s)",
            message.subject,
            ", ".join(message.recipients),
            resp.status_code,
        )
