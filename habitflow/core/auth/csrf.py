"""Session-bound CSRF tokens for the JSON API.

Clients read a token from ``/api/csrf`` and send it back in the
``X-CSRF-Token`` header on every mutating request.
"""

from __future__ import annotations

import secrets

from flask import request, session

CSRF_TOKEN_SESSION_KEY = "_csrf_token"
CSRF_HEADER = "X-CSRF-Token"


def generate_csrf_token() -> str:
    """Return the session's token, minting one on first use."""
    token = session.get(CSRF_TOKEN_SESSION_KEY)
    if not token:
        token = secrets.token_hex(32)
        session[CSRF_TOKEN_SESSION_KEY] = token
    return token


def request_csrf_token() -> str:
    return (request.headers.get(CSRF_HEADER) or "").strip()


def validate_csrf_token(token: str | None = None) -> bool:
    """Compare ``token`` (default: the request header) with the session token."""
    supplied = request_csrf_token() if token is None else token
    expected = session.get(CSRF_TOKEN_SESSION_KEY)
    if not supplied or not expected:
        return False
    return secrets.compare_digest(supplied, expected)
