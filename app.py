# app.py
import logging
import os
from typing import Any, Mapping, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from mailer.auth import build_authorizer, init_login_manager
from mailer.catalog import EMAIL_TYPES
from mailer.config import CORS_HEADERS, Settings, get_sendgrid_api_key, load_settings
from mailer.models import EmailType
from mailer.senders import SendGridClient
from mailer.service import Authorizer, EmailPipeline, SecretLookup, Sender

LOGGER = logging.getLogger(__name__)


def decode_request_fields() -> Mapping[str, Any]:
    """Return the JSON object sent by the caller, or an empty mapping.

    Callable-style bodies (``{"data": {...}}``) are unwrapped.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {}
    inner = payload.get("data")
    if len(payload) == 1 and isinstance(inner, dict):
        return inner
    return payload


def _make_view(pipeline: EmailPipeline, email_type: EmailType):
    def view():
        if request.method == "OPTIONS":
            return "", 200
        fields = decode_request_fields()
        body, status = pipeline.handle(email_type, fields)
        return jsonify(body), status

    view.__name__ = email_type.endpoint
    return view


def create_app(
    settings: Optional[Settings] = None,
    sender: Optional[Sender] = None,
    secret_lookup: Optional[SecretLookup] = None,
    authorizer: Optional[Authorizer] = None,
) -> Flask:
    """Build the Flask app serving one endpoint per email type."""
    settings = settings or load_settings()

    flask_app = Flask(__name__)
    flask_app.secret_key = settings.secret_key
    flask_app.json.ensure_ascii = False

    init_login_manager(flask_app, settings.api_tokens)
    if authorizer is None:
        authorizer = build_authorizer(settings.auth_mode)
    if sender is None:
        sender = SendGridClient(settings.sendgrid_api_url, settings.sendgrid_timeout).send

    pipeline = EmailPipeline(
        settings=settings,
        sender=sender,
        secret_lookup=secret_lookup or get_sendgrid_api_key,
        authorizer=authorizer,
    )

    for email_type in EMAIL_TYPES.values():
        flask_app.add_url_rule(
            f"/{email_type.endpoint}",
            endpoint=email_type.endpoint,
            view_func=_make_view(pipeline, email_type),
            methods=["GET", "POST", "OPTIONS"],
            provide_automatic_options=False,
        )

    @flask_app.get("/healthz")
    def healthz():
        return {"ok": True, "types": sorted(EMAIL_TYPES)}, 200

    @flask_app.errorhandler(HTTPException)
    def http_error(exc: HTTPException):
        return jsonify({"error": exc.description or exc.name}), exc.code

    @flask_app.after_request
    def add_cors_headers(response):
        response.headers.update(CORS_HEADERS)
        return response

    LOGGER.info(
        "Email functions ready: %d endpoints, auth=%s, operator=%s",
        len(EMAIL_TYPES),
        settings.auth_mode,
        settings.operator_email,
    )
    return flask_app


app = create_app()


if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "8080")), debug=os.getenv("FLASK_ENV") != "production")
