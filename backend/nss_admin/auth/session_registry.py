"""
Index of issued session snapshots and when they expire.

Snapshots live under ``session_<id>`` keys and the store has no native
expiry, so every login sweeps snapshots whose token can no longer be used.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..storage.base import KeyValueStore
from ..utils.clock import Clock, utc_now
from .tokens import session_snapshot_key

logger = logging.getLogger("nss_admin.auth.session")

SESSION_INDEX_KEY = "sessions"


def _parse_expiry(value: str) -> datetime | None:
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class SessionRegistry:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        index_key: str = SESSION_INDEX_KEY,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._index_key = index_key
        self._clock = clock

    def _load(self) -> dict[str, str]:
        index = self._store.read(self._index_key, {})
        if not isinstance(index, dict):
            logger.error("Session index is not a mapping (got %s); rebuilding it", type(index).__name__)
            return {}
        return {str(session_id): expiry for session_id, expiry in index.items() if isinstance(expiry, str)}

    def _drop_expired(self, index: dict[str, str]) -> list[str]:
        now = self._clock()
        expired = []
        for session_id, expiry in list(index.items()):
            moment = _parse_expiry(expiry)
            if moment is None or moment <= now:
                expired.append(session_id)
                del index[session_id]
                self._store.delete(session_snapshot_key(session_id))
        if expired:
            logger.info("Swept %d expired session(s)", len(expired))
        return expired

    def active_sessions(self) -> dict[str, str]:
        """Session id to ISO expiry for every indexed session."""
        return self._load()

    def register(self, session_id: str, expires_at: datetime) -> None:
        index = self._load()
        self._drop_expired(index)
        index[session_id] = expires_at.isoformat()
        self._store.write(self._index_key, index)

    def discard(self, session_id: str) -> None:
        index = self._load()
        if index.pop(session_id, None) is not None:
            self._store.write(self._index_key, index)

    def sweep(self) -> list[str]:
        """Delete the snapshots of expired sessions and return their ids."""
        index = self._load()
        expired = self._drop_expired(index)
        if expired:
            self._store.write(self._index_key, index)
        return expired
