"""Error taxonomy for the email request pipeline."""
from __future__ import annotations


class EmailError(Exception):
    """Base class for failures that map onto an HTTP error envelope."""

    status_code = 500

    def __init__(self, public_message: str):
        super().__init__(public_message)
        self.public_message = public_message


class ValidationError(EmailError):
    status_code = 400


class AuthorizationError(EmailError):
    status_code = 401


class ConfigurationError(EmailError):
    status_code = 500


class DeliveryError(EmailError):
    """The mail provider rejected the message or could not be reached."""

    status_code = 500


class DecodeError(ValueError):
    """Optional structured context could not be parsed. Logged, never mapped to HTTP."""
