from datetime import timedelta

from fastapi import APIRouter, Depends, Request, status

from ..auth.credentials import UserDirectory
from ..auth.identity import Identity
from ..auth.rate_limit import check_login_rate_limit, record_login_failure, reset_login_limit
from ..auth.session import SessionLifecycle
from ..auth.session_registry import SessionRegistry
from ..auth.tokens import create_session_token, new_session_id
from ..config import Settings
from ..dependencies import (
    get_app_settings,
    get_current_identity,
    get_session,
    get_session_id,
    get_session_registry,
    get_store,
    get_user_directory,
    open_session,
)
from ..errors import AuthenticationFailure
from ..schemas.auth import CurrentUserRead, LoginRequest, TokenResponse
from ..storage.base import KeyValueStore
from ..utils.clock import utc_now

router = APIRouter(prefix="/auth", tags=["auth"])


def _client_ip(request: Request) -> str:
    client_host = request.client.host if request.client else None
    return client_host or "unknown-ip"


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    request: Request,
    store: KeyValueStore = Depends(get_store),
    directory: UserDirectory = Depends(get_user_directory),
    registry: SessionRegistry = Depends(get_session_registry),
    app_settings: Settings = Depends(get_app_settings),
) -> TokenResponse:
    limiter = request.app.state.login_rate_limiter
    limit_key = check_login_rate_limit(payload.username, _client_ip(request), limiter=limiter)

    session_id = new_session_id()
    session = open_session(store, directory, session_id)
    if not session.login(payload.username, payload.password):
        record_login_failure(limit_key, limiter=limiter)
        raise AuthenticationFailure()
    reset_login_limit(limit_key, limiter=limiter)

    identity = session.identity
    if identity is None:
        raise AuthenticationFailure()
    issued_at = utc_now()
    token = create_session_token(
        session_id,
        secret_key=app_settings.secret_key or "",
        algorithm=app_settings.algorithm,
        expires_minutes=app_settings.session_expire_minutes,
        now=issued_at,
    )
    registry.register(
        session_id, issued_at + timedelta(minutes=app_settings.session_expire_minutes)
    )
    return TokenResponse(
        access_token=token,
        user=CurrentUserRead.from_identity(identity),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    session_id: str | None = Depends(get_session_id),
    session: SessionLifecycle | None = Depends(get_session),
    registry: SessionRegistry = Depends(get_session_registry),
) -> None:
    if session is not None:
        session.logout()
    if session_id is not None:
        registry.discard(session_id)


@router.get("/me", response_model=CurrentUserRead)
def me(identity: Identity = Depends(get_current_identity)) -> CurrentUserRead:
    return CurrentUserRead.from_identity(identity)
