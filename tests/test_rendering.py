import json

from mailer.catalog import (
    PAGE_CONTEXT_MISSING,
    PAGE_CONTEXT_UNAVAILABLE,
    decode_page_context,
    get_email_type,
)
from mailer.errors import DecodeError, EmailError
from mailer.rendering import build_context, render_email

BOOKING = {
    "clientName": "Ana",
    "clientEmail": "ana@x.com",
    "instructorName": "Bo",
    "sessionTitle": "Yoga",
    "bookingDateTime": "2024-01-05T10:00",
    "bookingId": "B1",
}

FEEDBACK = {
    "feedbackId": "F42",
    "feedbackText": "Search is slow on mobile",
    "feedbackType": "bug",
    "pageUrl": "https://arenna.link/search",
}


def _assert_contains_all(rendered, values):
    for value in values:
        assert value in rendered.text, value
        assert value in rendered.html, value


def test_booking_confirmation_template():
    rendered = render_email(get_email_type("booking_confirmation"), BOOKING)

    assert rendered.subject == "Booking Confirmed! 🎉"
    _assert_contains_all(rendered, ["Ana", "Bo", "Yoga", "2024-01-05T10:00", "B1"])
    assert rendered.html.lstrip().startswith("<html>")
    assert "ARENNA Team" in rendered.text


def test_instructor_notification_template():
    fields = dict(BOOKING, instructorEmail="bo@x.com")
    rendered = render_email(get_email_type("instructor_notification"), fields)

    assert rendered.subject == "New Booking Received! 📅"
    assert "Hi Bo," in rendered.text
    assert "Client: Ana" in rendered.text
    assert "#10B981" in rendered.html


def test_reminder_uses_default_lead_time():
    rendered = render_email(get_email_type("booking_reminder"), BOOKING)

    assert rendered.subject == "Reminder: Yoga in 24 hours"
    assert "starts in 24 hours" in rendered.text


def test_reminder_uses_supplied_lead_time():
    rendered = render_email(get_email_type("booking_reminder"), dict(BOOKING, hoursBefore="2"))

    assert rendered.subject == "Reminder: Yoga in 2 hours"
    assert "starts in 2 hours" in rendered.html


def test_cancellation_note_is_optional():
    email_type = get_email_type("client_cancellation")

    without_note = render_email(email_type, BOOKING)
    with_note = render_email(email_type, dict(BOOKING, message="Instructor is unwell"))

    assert "Note:" not in without_note.text
    assert "Note: Instructor is unwell" in with_note.text
    assert "Instructor is unwell" in with_note.html


def test_reschedule_shows_both_times():
    fields = {k: v for k, v in BOOKING.items() if k != "bookingDateTime"}
    fields.update(oldBookingDateTime="2024-01-05T10:00", newBookingDateTime="2024-01-06T11:30")

    rendered = render_email(get_email_type("client_reschedule"), fields)

    assert rendered.subject == "Booking Rescheduled"
    assert "Previous Date & Time: 2024-01-05T10:00" in rendered.text
    assert "New Date & Time: 2024-01-06T11:30" in rendered.text
    _assert_contains_all(rendered, ["2024-01-05T10:00", "2024-01-06T11:30"])


def test_schedule_change_includes_message():
    rendered = render_email(
        get_email_type("schedule_change"),
        dict(BOOKING, message="Class moves to Studio B"),
    )

    assert rendered.subject == "Schedule Change: Yoga"
    _assert_contains_all(rendered, ["Class moves to Studio B", "Ana", "Bo", "B1"])


def test_html_escapes_user_values_but_text_does_not():
    fields = dict(BOOKING, clientName="<Ana & Co>")

    rendered = render_email(get_email_type("booking_confirmation"), fields)

    assert "&lt;Ana &amp; Co&gt;" in rendered.html
    assert "<Ana & Co>" in rendered.text


def test_generic_email_passes_content_through():
    fields = {"to": "x@y.z", "subject": "Hi", "htmlContent": "<b>raw</b>", "textContent": "raw"}

    rendered = render_email(get_email_type("email"), fields)

    assert rendered.subject == "Hi"
    assert rendered.html == "<b>raw</b>"
    assert rendered.text == "raw"


def test_feedback_renders_decoded_page_context():
    context = {"section": "search", "viewport": {"w": 390, "h": 844}}
    fields = dict(FEEDBACK, hasPageContext="true", pageContext=json.dumps(context))

    rendered = render_email(get_email_type("feedback"), fields)

    assert rendered.subject == "New bug feedback received"
    assert "section" in rendered.html
    assert "search" in rendered.html
    assert "- section: search" in rendered.text
    assert PAGE_CONTEXT_UNAVAILABLE not in rendered.html
    _assert_contains_all(rendered, ["F42", "Search is slow on mobile", "bug"])


def test_feedback_accepts_boolean_flag():
    fields = dict(FEEDBACK, hasPageContext=True, pageContext='{"route": "/home"}')

    rendered = render_email(get_email_type("feedback"), fields)

    assert "- route: /home" in rendered.text


def test_feedback_with_malformed_page_context_degrades():
    fields = dict(FEEDBACK, hasPageContext="true", pageContext="{this is not json")

    rendered = render_email(get_email_type("feedback"), fields)

    assert PAGE_CONTEXT_UNAVAILABLE in rendered.html
    assert PAGE_CONTEXT_UNAVAILABLE in rendered.text


def test_feedback_without_flag_ignores_page_context():
    fields = dict(FEEDBACK, hasPageContext="false", pageContext='{"route": "/home"}')

    rendered = render_email(get_email_type("feedback"), fields)

    assert PAGE_CONTEXT_MISSING in rendered.html
    assert "/home" not in rendered.text


def test_feedback_submitter_line():
    anonymous = render_email(get_email_type("feedback"), FEEDBACK)
    named = render_email(
        get_email_type("feedback"),
        dict(FEEDBACK, userName="Ana", userEmail="ana@x.com"),
    )

    assert "From: Anonymous" in anonymous.text
    assert "From: Ana <ana@x.com>" in named.text


def test_decode_page_context_rejects_non_objects():
    for raw in ("[1, 2, 3]", "42", None, ""):
        try:
            decode_page_context(raw)
        except DecodeError:
            pass
        else:
            raise AssertionError(f"Expected DecodeError for {raw!r}")


def test_decode_page_context_flattens_nested_values():
    pairs = decode_page_context('{"a": 1, "b": {"c": true}, "d": null}')

    assert pairs == [("a", "1"), ("b", '{"c": true}'), ("d", "")]


def test_context_only_holds_declared_fields():
    fields = dict(BOOKING, hoursBefore="3", self="x", panel_background="#000")

    context = build_context(get_email_type("booking_reminder"), fields)

    assert context["hoursBefore"] == "3"
    assert "self" not in context
    assert "panel_background" not in context


def test_decode_error_is_not_an_http_error():
    assert issubclass(DecodeError, ValueError)
    assert not issubclass(DecodeError, EmailError)
