"""Redis-backed key-value store.

Values are stored as JSON strings under ``<prefix><key>``. The client is
injected so tests and callers can share one connection pool.
"""
from __future__ import annotations

import json
import logging
from typing import Any, TypeVar

from redis import Redis, RedisError

from .base import StorageError, validate_key

logger = logging.getLogger("nss_admin.storage.redis")

T = TypeVar("T")


def get_redis_client(redis_url: str) -> Redis:
    """Create a synchronous Redis client that returns str values."""
    if not redis_url:
        raise ValueError("REDIS_URL must be set for the redis storage backend")
    return Redis.from_url(redis_url, decode_responses=True)


class RedisStore:
    def __init__(self, client: Redis, key_prefix: str = "nss:") -> None:
        self._redis = client
        self._prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str, key_prefix: str = "nss:") -> "RedisStore":
        return cls(get_redis_client(redis_url), key_prefix=key_prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{validate_key(key)}"

    def read(self, key: str, fallback: T) -> Any | T:
        redis_key = self._key(key)
        try:
            raw = self._redis.get(redis_key)
        except RedisError as exc:
            logger.error("Redis operation failed operation=GET key=%s error=%s", redis_key, exc)
            raise StorageError(f"Redis GET failed for {redis_key}") from exc
        if raw is None:
            return fallback
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Corrupt JSON value key=%s error=%s", redis_key, exc)
            return fallback

    def write(self, key: str, value: Any) -> None:
        redis_key = self._key(key)
        try:
            self._redis.set(redis_key, json.dumps(value, ensure_ascii=False))
        except RedisError as exc:
            logger.error("Redis operation failed operation=SET key=%s error=%s", redis_key, exc)
            raise StorageError(f"Redis SET failed for {redis_key}") from exc

    def delete(self, key: str) -> None:
        redis_key = self._key(key)
        try:
            self._redis.delete(redis_key)
        except RedisError as exc:
            logger.error("Redis operation failed operation=DEL key=%s error=%s", redis_key, exc)
            raise StorageError(f"Redis DEL failed for {redis_key}") from exc

    def close(self) -> None:
        self._redis.close()
        logger.info("Redis connection closed")
