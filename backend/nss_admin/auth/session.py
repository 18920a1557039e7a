"""
Session lifecycle: holds at most one authenticated identity and keeps its
snapshot in the key-value store.

States and transitions:
- UNAUTHENTICATED -> AUTHENTICATING (login)
- AUTHENTICATING -> AUTHENTICATED (active account, matching credentials)
- AUTHENTICATING -> UNAUTHENTICATED (anything else)
- UNAUTHENTICATED -> AUTHENTICATED (restore of a valid or repairable snapshot)
- UNAUTHENTICATED -> CORRUPTED -> UNAUTHENTICATED (restore of an unreadable
  snapshot; the snapshot is cleared)
- AUTHENTICATED -> UNAUTHENTICATED (logout; the snapshot is cleared)
"""
from __future__ import annotations

import logging
from enum import Enum

from ..errors import MalformedSession
from ..storage.base import KeyValueStore
from ..utils.clock import Clock, utc_now
from .credentials import CredentialStore
from .identity import Identity, parse_identity_snapshot

logger = logging.getLogger("nss_admin.auth.session")

DEFAULT_SNAPSHOT_KEY = "admin_session"


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    CORRUPTED = "corrupted"


class SessionLifecycle:
    def __init__(
        self,
        store: KeyValueStore,
        credentials: CredentialStore,
        *,
        snapshot_key: str = DEFAULT_SNAPSHOT_KEY,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._snapshot_key = snapshot_key
        self._clock = clock
        self._state = SessionState.UNAUTHENTICATED
        self._identity: Identity | None = None
        self._transitions: list[SessionState] = [self._state]

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        self._transitions.append(state)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def snapshot_key(self) -> str:
        return self._snapshot_key

    @property
    def transitions(self) -> list[SessionState]:
        """States entered since construction, oldest first."""
        return list(self._transitions)

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    def _clear(self) -> None:
        self._identity = None
        self._store.delete(self._snapshot_key)
        self._set_state(SessionState.UNAUTHENTICATED)

    def restore(self) -> SessionState:
        """Load the persisted snapshot, repairing or discarding it as needed."""
        raw = self._store.read(self._snapshot_key, None)
        if raw is None:
            self._identity = None
            self._set_state(SessionState.UNAUTHENTICATED)
            return self._state

        try:
            loaded = parse_identity_snapshot(raw)
        except MalformedSession as exc:
            self._set_state(SessionState.CORRUPTED)
            logger.error(
                "Failed to parse stored session key=%s details=%s; clearing it",
                self._snapshot_key,
                exc.details,
            )
            self._clear()
            return self._state

        self._identity = loaded.identity
        if loaded.repaired:
            self._store.write(self._snapshot_key, loaded.identity.to_snapshot())
        self._set_state(SessionState.AUTHENTICATED)
        return self._state

    def login(self, username: str, password: str) -> bool:
        """Authenticate and persist the identity.

        Returns False for any mismatch; the caller cannot tell an unknown
        username from a wrong password or an inactive account.
        """
        self._identity = None
        self._set_state(SessionState.AUTHENTICATING)

        identity = self._credentials.verify(username, password)
        if identity is None:
            logger.warning("Login failed for a submitted username")
            self._clear()
            return False

        identity = identity.stamped_login(self._clock())
        self._credentials.record_login(identity)
        self._store.write(self._snapshot_key, identity.to_snapshot())
        self._identity = identity
        self._set_state(SessionState.AUTHENTICATED)
        logger.info("User %s logged in with role=%s", identity.username, identity.role)
        return True

    def logout(self) -> None:
        if self._identity is not None:
            logger.info("User %s logged out", self._identity.username)
        self._clear()
