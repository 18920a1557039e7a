import hashlib
import time
from collections import defaultdict
from typing import DefaultDict, List

from ..errors import RateLimitedError

IDENTIFIER_HASH_LENGTH = 64
IP_FALLBACK_LENGTH = 8


class SoftRateLimiter:
    """Sliding-window failure counter kept in process memory."""

    def __init__(self, max_attempts: int, window_seconds: int) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._attempts: DefaultDict[str, List[float]] = defaultdict(list)

    def _prune(self, key: str, now: float) -> List[float]:
        cutoff = now - self.window_seconds
        attempts = [ts for ts in self._attempts.get(key, []) if ts >= cutoff]
        if attempts:
            self._attempts[key] = attempts
        else:
            self._attempts.pop(key, None)
        return attempts

    def is_limited(self, key: str, now: float | None = None) -> bool:
        current = now or time.time()
        attempts = self._prune(key, current)
        return len(attempts) >= self.max_attempts

    def record_failure(self, key: str, now: float | None = None) -> None:
        current = now or time.time()
        attempts = self._prune(key, current)
        attempts.append(current)
        self._attempts[key] = attempts

    def reset(self, key: str) -> None:
        self._attempts.pop(key, None)

    def clear(self) -> None:
        self._attempts.clear()


def _make_key(scope: str, identifier: str, client_ip: str | None) -> str:
    if not identifier:
        raise ValueError("identifier is required for rate limiting")
    identifier_hash = hashlib.sha256(identifier.encode()).hexdigest()
    identifier_component = identifier_hash[:IDENTIFIER_HASH_LENGTH]
    ip_component = client_ip or f"unknown-ip-{identifier_hash[:IP_FALLBACK_LENGTH]}"
    return f"{scope}:{ip_component}:{identifier_component}"


def check_login_rate_limit(
    username: str,
    client_ip: str | None,
    *,
    limiter: SoftRateLimiter,
) -> str:
    """Return the limiter key for this attempt.

    Raises:
        RateLimitedError: If the window already holds too many failures
    """
    key = _make_key("login", username, client_ip)
    if limiter.is_limited(key):
        raise RateLimitedError()
    return key


def record_login_failure(key: str, *, limiter: SoftRateLimiter) -> None:
    limiter.record_failure(key)


def reset_login_limit(key: str, *, limiter: SoftRateLimiter) -> None:
    limiter.reset(key)
