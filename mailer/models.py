from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence


@dataclass(slots=True, frozen=True)
class SenderIdentity:
    """Address and display name used in the ``from`` header."""

    email: str
    name: str


@dataclass(slots=True, frozen=True)
class RenderedEmail:
    """Subject and bodies produced by a message template."""

    subject: str
    text: str
    html: str


@dataclass(slots=True)
class OutboundMessage:
    """Fully rendered payload handed to the mail sender."""

    recipients: List[str]
    sender: SenderIdentity
    subject: str
    text: str
    html: str


@dataclass(slots=True, frozen=True)
class EmailType:
    """One row of the email catalog.

    ``recipient_field`` names the request field holding the primary address;
    ``None`` means the message only goes to the operator address.
    Only ``required`` and ``optional`` fields reach the template context.
    ``prepare`` may derive extra template variables from those fields.
    """

    key: str
    endpoint: str
    label: str
    required: Sequence[str]
    optional: Sequence[str] = ()
    template: Optional[str] = None
    subject: str = ""
    recipient_field: Optional[str] = None
    copy_operator: bool = True
    allow_mock_send: bool = False
    sender_override: bool = False
    prepare: Optional[Callable[[Mapping[str, Any]], Dict[str, Any]]] = None
    defaults: Mapping[str, str] = field(default_factory=dict)

    @property
    def noun(self) -> str:
        return "email" if self.label == "email" else f"{self.label} email"

    @property
    def success_message(self) -> str:
        return f"{self.noun.capitalize()} sent successfully"

    @property
    def mock_message(self) -> str:
        return f"{self.noun.capitalize()} logged (mock send, API key not configured)"

    @property
    def missing_fields_message(self) -> str:
        return f"Missing required {self.label} fields"

    def delivery_failure_message(self, cause: str) -> str:
        return f"Failed to send {self.noun}: {cause}"
