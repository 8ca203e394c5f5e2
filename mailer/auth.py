"""Pluggable caller authorization for the email endpoints.

``none`` lets every caller through. ``token`` requires an
``Authorization: Bearer <token>`` header matching one of the configured
API tokens and is resolved through Flask-Login's request loader.
"""
from __future__ import annotations

import secrets
from typing import Callable, Iterable, Optional

from flask import Flask, Request
from flask_login import LoginManager, UserMixin, current_user


class ApiClient(UserMixin):
    def __init__(self, token_index: int):
        self.id = f"api-token-{token_index}"


def _bearer_token(req: Request) -> Optional[str]:
    header = req.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def init_login_manager(app: Flask, tokens: Iterable[str]) -> LoginManager:
    allowed = [t for t in tokens if t]
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.request_loader
    def load_client_from_request(req: Request):
        token = _bearer_token(req)
        if not token:
            return None
        for idx, candidate in enumerate(allowed):
            if secrets.compare_digest(token.encode(), candidate.encode()):
                return ApiClient(idx)
        return None

    return login_manager


def build_authorizer(mode: str) -> Callable[[], bool]:
    if mode == "none":
        return lambda: True
    if mode == "token":
        return lambda: bool(current_user.is_authenticated)
    raise ValueError(f"Unknown auth mode: {mode!r}")
