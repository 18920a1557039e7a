"""Signed session tokens.

A token only names a session id (``sub``); the identity itself lives in the
session snapshot, so revoking a session is just deleting its snapshot.
"""
from __future__ import annotations

import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

SESSION_KEY_PREFIX = "session_"
_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,64}$")


class InvalidTokenError(Exception):
    """Raised when a token cannot be parsed or is malformed."""


class ExpiredTokenError(Exception):
    """Raised when a token has expired."""


def new_session_id() -> str:
    return secrets.token_urlsafe(24)


def session_snapshot_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def create_session_token(
    session_id: str,
    *,
    secret_key: str,
    algorithm: str,
    expires_minutes: int,
    now: datetime | None = None,
) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": session_id,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def _parse_token_payload(token: str, secret_key: str, algorithm: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise ExpiredTokenError from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError from exc


def validate_session_token(token: str, *, secret_key: str, algorithm: str) -> str:
    """Return the session id carried by a valid token."""
    payload = _parse_token_payload(token, secret_key, algorithm)

    subject = payload.get("sub")
    if not isinstance(subject, str) or not _SESSION_ID_PATTERN.match(subject):
        raise InvalidTokenError()

    return subject
