"""Catalog of the email types served by the functions app.

Every handler is one row here; behaviour lives in :mod:`mailer.service`.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import DecodeError
from .models import EmailType

LOGGER = logging.getLogger(__name__)

PAGE_CONTEXT_MISSING = "No page context provided"
PAGE_CONTEXT_UNAVAILABLE = "Page context unavailable (could not be decoded)"

_CLIENT_BOOKING_FIELDS = (
    "clientName",
    "clientEmail",
    "instructorName",
    "sessionTitle",
    "bookingDateTime",
    "bookingId",
)
_INSTRUCTOR_BOOKING_FIELDS = (
    "instructorName",
    "instructorEmail",
    "clientName",
    "sessionTitle",
    "bookingDateTime",
    "bookingId",
)


def _flag_enabled(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def decode_page_context(raw: Any) -> List[Tuple[str, str]]:
    """Decode the JSON ``pageContext`` string into display pairs."""
    if isinstance(raw, dict):
        data = raw
    else:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"pageContext is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise DecodeError("pageContext must decode to a JSON object")

    pairs: List[Tuple[str, str]] = []
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, ensure_ascii=False)
        pairs.append((str(key), "" if value is None else str(value)))
    return pairs


def prepare_feedback(fields: Mapping[str, Any]) -> Dict[str, Any]:
    page_context: Optional[List[Tuple[str, str]]] = None
    note = PAGE_CONTEXT_MISSING
    if _flag_enabled(fields.get("hasPageContext")):
        try:
            page_context = decode_page_context(fields.get("pageContext"))
        except DecodeError as exc:
            LOGGER.warning(
                "Feedback %s: page context could not be decoded: %s",
                fields.get("feedbackId"),
                exc,
            )
            note = PAGE_CONTEXT_UNAVAILABLE

    name = fields.get("userName")
    email = fields.get("userEmail")
    if name and email:
        submitter = f"{name} <{email}>"
    else:
        submitter = name or email or "Anonymous"

    return {
        "page_context": page_context,
        "page_context_note": note,
        "submitter": submitter,
    }


EMAIL_TYPES: Dict[str, EmailType] = {
    t.key: t
    for t in (
        EmailType(
            key="email",
            endpoint="sendEmail",
            label="email",
            required=("to", "subject", "htmlContent", "textContent"),
            optional=("fromEmail", "fromName"),
            recipient_field="to",
            copy_operator=False,
            sender_override=True,
        ),
        EmailType(
            key="booking_confirmation",
            endpoint="sendBookingConfirmation",
            label="booking confirmation",
            required=_CLIENT_BOOKING_FIELDS,
            template="booking_confirmation",
            subject="Booking Confirmed! 🎉",
            recipient_field="clientEmail",
            allow_mock_send=True,
        ),
        EmailType(
            key="instructor_notification",
            endpoint="sendInstructorNotification",
            label="instructor notification",
            required=_INSTRUCTOR_BOOKING_FIELDS,
            template="instructor_notification",
            subject="New Booking Received! 📅",
            recipient_field="instructorEmail",
            allow_mock_send=True,
        ),
        EmailType(
            key="booking_reminder",
            endpoint="sendBookingReminder",
            label="booking reminder",
            required=_CLIENT_BOOKING_FIELDS,
            optional=("hoursBefore",),
            template="booking_reminder",
            subject="Reminder: {{ sessionTitle }} in {{ hoursBefore }} hours",
            recipient_field="clientEmail",
            defaults={"hoursBefore": "24"},
        ),
        EmailType(
            key="client_cancellation",
            endpoint="sendCancellationNotice",
            label="cancellation",
            required=_CLIENT_BOOKING_FIELDS,
            optional=("message",),
            template="client_cancellation",
            subject="Booking Cancelled",
            recipient_field="clientEmail",
        ),
        EmailType(
            key="instructor_cancellation",
            endpoint="sendInstructorCancellationNotice",
            label="instructor cancellation",
            required=_INSTRUCTOR_BOOKING_FIELDS,
            optional=("message",),
            template="instructor_cancellation",
            subject="Booking Cancelled by Client",
            recipient_field="instructorEmail",
        ),
        EmailType(
            key="client_reschedule",
            endpoint="sendRescheduleNotice",
            label="reschedule",
            required=(
                "clientName",
                "clientEmail",
                "instructorName",
                "sessionTitle",
                "oldBookingDateTime",
                "newBookingDateTime",
                "bookingId",
            ),
            template="client_reschedule",
            subject="Booking Rescheduled",
            recipient_field="clientEmail",
        ),
        EmailType(
            key="instructor_reschedule",
            endpoint="sendInstructorRescheduleNotice",
            label="instructor reschedule",
            required=(
                "instructorName",
                "instructorEmail",
                "clientName",
                "sessionTitle",
                "oldBookingDateTime",
                "newBookingDateTime",
                "bookingId",
            ),
            template="instructor_reschedule",
            subject="Booking Rescheduled by Client",
            recipient_field="instructorEmail",
        ),
        EmailType(
            key="schedule_change",
            endpoint="sendScheduleChangeNotice",
            label="schedule change",
            required=_CLIENT_BOOKING_FIELDS + ("message",),
            template="schedule_change",
            subject="Schedule Change: {{ sessionTitle }}",
            recipient_field="clientEmail",
        ),
        EmailType(
            key="feedback",
            endpoint="sendFeedbackNotification",
            label="feedback notification",
            required=("feedbackId", "feedbackText", "feedbackType"),
            optional=("pageUrl", "pageContext", "hasPageContext", "userName", "userEmail"),
            template="feedback",
            subject="New {{ feedbackType }} feedback received",
            recipient_field=None,
            prepare=prepare_feedback,
        ),
    )
}


def get_email_type(key: str) -> EmailType:
    try:
        return EMAIL_TYPES[key]
    except KeyError:
        raise KeyError(f"Unknown email type: {key}") from None


__all__ = [
    "EMAIL_TYPES",
    "PAGE_CONTEXT_MISSING",
    "PAGE_CONTEXT_UNAVAILABLE",
    "decode_page_context",
    "get_email_type",
    "prepare_feedback",
]
