"""Pure template rendering: request fields in, subject/text/html out."""
from __future__ import annotations

from typing import Any, Dict, Mapping

from jinja2 import Environment, PackageLoader, select_autoescape

from .models import EmailType, RenderedEmail

_ENV = Environment(
    loader=PackageLoader("mailer", "templates"),
    autoescape=select_autoescape(["html"], default_for_string=False),
    trim_blocks=True,
    lstrip_blocks=True,
)


def build_context(email_type: EmailType, fields: Mapping[str, Any]) -> Dict[str, Any]:
    context: Dict[str, Any] = dict(email_type.defaults)
    for key in (*email_type.required, *email_type.optional):
        value = fields.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        context[key] = value.strip() if isinstance(value, str) else value
    if email_type.prepare is not None:
        context.update(email_type.prepare(context))
    return context


def render_email(email_type: EmailType, fields: Mapping[str, Any]) -> RenderedEmail:
    """Render the message for ``email_type``.

    Types without a template forward caller-provided ``subject``,
    ``textContent`` and ``htmlContent`` untouched.
    """
    if email_type.template is None:
        return RenderedEmail(
            subject=str(fields["subject"]),
            text=str(fields["textContent"]),
            html=str(fields["htmlContent"]),
        )

    context = build_context(email_type, fields)
    subject = _ENV.from_string(email_type.subject).render(context)
    text = _ENV.get_template(f"{email_type.template}.txt").render(context)
    html = _ENV.get_template(f"{email_type.template}.html").render(context)
    return RenderedEmail(subject=subject.strip(), text=text.strip() + "\n", html=html)
