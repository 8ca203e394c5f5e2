"""Environment-driven configuration for the email functions."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_FROM_ADDRESS = "noreply@arenna.link"
DEFAULT_FROM_NAME = "ARENNA"
DEFAULT_OPERATOR_EMAIL = "yuklein@gmail.com"
DEFAULT_SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"

AUTH_MODES = {"none", "token"}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


@dataclass(slots=True)
class Settings:
    """Process-wide settings, loaded once when the app is created."""

    from_address: str = DEFAULT_FROM_ADDRESS
    from_name: str = DEFAULT_FROM_NAME
    operator_email: str = DEFAULT_OPERATOR_EMAIL
    sendgrid_api_url: str = DEFAULT_SENDGRID_API_URL
    sendgrid_timeout: Optional[float] = None
    auth_mode: str = "none"
    api_tokens: List[str] = field(default_factory=list)
    secret_key: str = "dev-only-key"


def get_sendgrid_api_key() -> Optional[str]:
    """Look up the provider credential; ``None`` when it is not configured."""
    key = os.getenv("SENDGRID_API_KEY") or os.getenv("SENDGRID_KEY")
    if key and key.strip():
        return key.strip()
    return None


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if not raw or not raw.strip():
        return None
    value = float(raw)
    return value if value > 0 else None


def load_settings() -> Settings:
    mode = os.getenv("EMAIL_AUTH_MODE", "none").strip().lower() or "none"
    if mode not in AUTH_MODES:
        raise ValueError(f"EMAIL_AUTH_MODE must be one of {sorted(AUTH_MODES)}, got {mode!r}")

    tokens_raw = os.getenv("EMAIL_API_TOKENS", "")
    tokens = [t.strip() for t in tokens_raw.split(",") if t.strip()]

    return Settings(
        from_address=os.getenv("EMAIL_FROM_ADDRESS") or DEFAULT_FROM_ADDRESS,
        from_name=os.getenv("EMAIL_FROM_NAME") or DEFAULT_FROM_NAME,
        operator_email=os.getenv("OPERATOR_EMAIL") or DEFAULT_OPERATOR_EMAIL,
        sendgrid_api_url=os.getenv("SENDGRID_API_URL") or DEFAULT_SENDGRID_API_URL,
        sendgrid_timeout=_parse_timeout(os.getenv("SENDGRID_TIMEOUT")),
        auth_mode=mode,
        api_tokens=tokens,
        secret_key=os.getenv("SECRET_KEY", "dev-only-key"),
    )
