from datetime import datetime, timedelta, timezone

import jwt
import pytest

from nss_admin.auth.tokens import (
    ExpiredTokenError,
    InvalidTokenError,
    create_session_token,
    new_session_id,
    session_snapshot_key,
    validate_session_token,
)

SECRET = "test-secret-key"


def test_token_carries_the_session_id() -> None:
    session_id = new_session_id()
    token = create_session_token(session_id, secret_key=SECRET, algorithm="HS256", expires_minutes=5)

    assert validate_session_token(token, secret_key=SECRET, algorithm="HS256") == session_id
    assert session_snapshot_key(session_id) == f"session_{session_id}"


def test_expired_token() -> None:
    issued = datetime.now(timezone.utc) - timedelta(hours=2)
    token = create_session_token(
        new_session_id(), secret_key=SECRET, algorithm="HS256", expires_minutes=60, now=issued
    )

    with pytest.raises(ExpiredTokenError):
        validate_session_token(token, secret_key=SECRET, algorithm="HS256")


def test_wrong_secret_is_rejected() -> None:
    token = create_session_token(new_session_id(), secret_key=SECRET, algorithm="HS256", expires_minutes=5)

    with pytest.raises(InvalidTokenError):
        validate_session_token(token, secret_key="other-secret", algorithm="HS256")


@pytest.mark.parametrize("subject", [None, "short", "../../users", "a" * 65])
def test_unusable_subjects_are_rejected(subject: object) -> None:
    now = datetime.now(timezone.utc)
    payload = {"iat": now, "exp": now + timedelta(minutes=5)}
    if subject is not None:
        payload["sub"] = subject
    token = jwt.encode(payload, SECRET, algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        validate_session_token(token, secret_key=SECRET, algorithm="HS256")


def test_garbage_token() -> None:
    with pytest.raises(InvalidTokenError):
        validate_session_token("not-a-token", secret_key=SECRET, algorithm="HS256")
