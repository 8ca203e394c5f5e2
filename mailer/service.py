"""The request pipeline shared by every email handler."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .config import Settings
from .errors import AuthorizationError, ConfigurationError, DeliveryError, EmailError, ValidationError
from .models import EmailType, OutboundMessage, SenderIdentity
from .rendering import render_email

LOGGER = logging.getLogger(__name__)

UNAUTHENTICATED_MESSAGE = "The function must be called while authenticated."

Sender = Callable[[OutboundMessage, str], None]
SecretLookup = Callable[[], Optional[str]]
Authorizer = Callable[[], bool]
Response = Tuple[Dict[str, Any], int]


def missing_fields(email_type: EmailType, fields: Mapping[str, Any]) -> List[str]:
    missing = []
    for name in email_type.required:
        value = fields.get(name)
        if isinstance(value, str):
            value = value.strip()
        if not value:
            missing.append(name)
    return missing


def _recipient_candidates(email_type: EmailType, fields: Mapping[str, Any]) -> List[str]:
    value = fields[email_type.recipient_field]
    if isinstance(value, str):
        return [value.strip()]
    if isinstance(value, list) and value and all(isinstance(v, str) and v.strip() for v in value):
        return [v.strip() for v in value]
    raise ValidationError(f"Invalid {email_type.label} recipient")


def build_recipients(email_type: EmailType, fields: Mapping[str, Any], operator_email: str) -> List[str]:
    """Primary address(es) plus the operator copy, de-duplicated.

    The primary field may hold one address or a list of addresses.
    """
    candidates: List[str] = []
    if email_type.recipient_field:
        candidates.extend(_recipient_candidates(email_type, fields))
    if email_type.copy_operator or not email_type.recipient_field:
        candidates.append(operator_email)

    recipients: List[str] = []
    seen = set()
    for addr in candidates:
        key = addr.lower()
        if addr and key not in seen:
            seen.add(key)
            recipients.append(addr)
    return recipients


def resolve_sender(email_type: EmailType, fields: Mapping[str, Any], default: SenderIdentity) -> SenderIdentity:
    if not email_type.sender_override:
        return default
    return SenderIdentity(
        email=fields.get("fromEmail") or default.email,
        name=fields.get("fromName") or default.name,
    )


class EmailPipeline:
    """Validate, render and deliver one email request.

    The sender, secret lookup and authorizer are injected once at startup;
    each call to :meth:`handle` is independent and keeps no state.
    """

    def __init__(
        self,
        settings: Settings,
        sender: Sender,
        secret_lookup: SecretLookup,
        authorizer: Optional[Authorizer] = None,
    ):
        self.settings = settings
        self.sender = sender
        self.secret_lookup = secret_lookup
        self.authorizer = authorizer or (lambda: True)
        self.default_sender = SenderIdentity(email=settings.from_address, name=settings.from_name)

    def handle(self, email_type: EmailType, fields: Mapping[str, Any]) -> Response:
        LOGGER.info("Email handler invoked: type=%s fields=%s", email_type.key, sorted(fields))
        try:
            return self._process(email_type, fields)
        except EmailError as exc:
            LOGGER.warning(
                "Email handler failed: type=%s status=%s error=%s",
                email_type.key,
                exc.status_code,
                exc.public_message,
            )
            return {"error": exc.public_message}, exc.status_code
        except Exception:
            LOGGER.exception("Unexpected failure while handling %s email", email_type.key)
            return {"error": f"Internal error while processing {email_type.noun}"}, 500

    def _process(self, email_type: EmailType, fields: Mapping[str, Any]) -> Response:
        if not self.authorizer():
            raise AuthorizationError(UNAUTHENTICATED_MESSAGE)

        missing = missing_fields(email_type, fields)
        if missing:
            LOGGER.info("Rejected %s request: missing %s", email_type.key, ", ".join(missing))
            raise ValidationError(email_type.missing_fields_message)
        recipients = build_recipients(email_type, fields, self.settings.operator_email)
        LOGGER.info("Validated %s request", email_type.key)

        api_key = self.secret_lookup()
        if not api_key:
            if email_type.allow_mock_send:
                LOGGER.warning("API key not configured; mock send for %s", email_type.key)
                return {
                    "success": True,
                    "message": email_type.mock_message,
                    "emailData": dict(fields),
                }, 200
            raise ConfigurationError("API key not configured")
        LOGGER.info("Email provider credential available for %s", email_type.key)

        rendered = render_email(email_type, fields)
        message = OutboundMessage(
            recipients=recipients,
            sender=resolve_sender(email_type, fields, self.default_sender),
            subject=rendered.subject,
            text=rendered.text,
            html=rendered.html,
        )

        try:
            self.sender(message, api_key)
        except Exception as exc:
            cause = exc.public_message if isinstance(exc, EmailError) else str(exc)
            LOGGER.error("Delivery of %s email to %s failed: %s", email_type.key, message.recipients, cause)
            raise DeliveryError(email_type.delivery_failure_message(cause)) from exc

        LOGGER.info("Delivered %s email to %s", email_type.key, ", ".join(message.recipients))
        return {"success": True, "message": email_type.success_message}, 200
