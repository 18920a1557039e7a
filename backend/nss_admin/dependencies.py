import logging
from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .auth.credentials import UserDirectory
from .auth.guard import AccessGuard, Denied, raise_for_decision
from .auth.identity import Identity
from .auth.roles import Action, Role
from .auth.session import SessionLifecycle
from .auth.session_registry import SessionRegistry
from .auth.tokens import (
    ExpiredTokenError,
    InvalidTokenError,
    session_snapshot_key,
    validate_session_token,
)
from .config import Settings
from .errors import AuthError, AuthenticationRequired
from .services.audit_service import audit_service
from .storage.base import KeyValueStore

logger = logging.getLogger("nss_admin.auth.session")

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> KeyValueStore:
    return request.app.state.store


def get_user_directory(request: Request) -> UserDirectory:
    return request.app.state.user_directory


def get_session_registry(store: KeyValueStore = Depends(get_store)) -> SessionRegistry:
    return SessionRegistry(store)


def get_session_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    app_settings: Settings = Depends(get_app_settings),
    registry: SessionRegistry = Depends(get_session_registry),
) -> str | None:
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    try:
        return validate_session_token(
            credentials.credentials,
            secret_key=app_settings.secret_key or "",
            algorithm=app_settings.algorithm,
        )
    except ExpiredTokenError:
        registry.sweep()
        raise AuthError("Session has expired") from None
    except InvalidTokenError:
        raise AuthError("Invalid token") from None


def open_session(
    store: KeyValueStore, directory: UserDirectory, session_id: str
) -> SessionLifecycle:
    return SessionLifecycle(
        store,
        directory,
        snapshot_key=session_snapshot_key(session_id),
    )


def _matches_account(identity: Identity, account: Identity | None) -> bool:
    return (
        account is not None
        and account.is_active
        and account.role == identity.role
        and account.permissions == identity.permissions
    )


def get_session(
    session_id: str | None = Depends(get_session_id),
    store: KeyValueStore = Depends(get_store),
    directory: UserDirectory = Depends(get_user_directory),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionLifecycle | None:
    """Restore the caller's session and drop it when the account behind it changed.

    A snapshot is only honoured while its account still exists, is active and
    holds the same role and permissions it had at login.
    """
    if session_id is None:
        return None
    session = open_session(store, directory, session_id)
    session.restore()
    identity = session.identity
    if identity is not None and not _matches_account(identity, directory.find_by_id(identity.id)):
        logger.info("Dropping stale session for user=%s", identity.username)
        session.logout()
        registry.discard(session_id)
    return session


def get_access_guard(
    session: SessionLifecycle | None = Depends(get_session),
) -> AccessGuard:
    return AccessGuard(session)


def get_current_identity(guard: AccessGuard = Depends(get_access_guard)) -> Identity:
    return guard.require()


def require_access(
    resource: str | None = None,
    action: Action | str | None = None,
    role: Role | str | None = None,
) -> Callable[..., Identity]:
    """
    Dependency factory guarding a handler.

    The returned dependency yields the current identity when the guard allows
    the request. Otherwise it logs an audit entry and raises:
    - AuthenticationRequired (401) when nobody is logged in
    - PermissionDenied (403) when the role or permission check fails
    """

    def dependency(
        request: Request,
        guard: AccessGuard = Depends(get_access_guard),
    ) -> Identity:
        decision = guard.check(resource=resource, action=action, role=role)
        if isinstance(decision, Denied):
            audit_service.log_permission_denied(
                actor=guard.identity,
                reason=decision.reason.value,
                request_method=request.method,
                request_path=request.url.path,
                resource=decision.resource,
                action=decision.action,
                required_role=decision.required_role,
            )
        raise_for_decision(decision)
        identity = guard.identity
        if identity is None:
            raise AuthenticationRequired()
        return identity

    return dependency
