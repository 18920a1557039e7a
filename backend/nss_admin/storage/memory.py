from __future__ import annotations

import copy
import threading
from typing import Any, TypeVar

from .base import validate_key

T = TypeVar("T")


class MemoryStore:
    """Process-local store; values are deep-copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.Lock()

    def read(self, key: str, fallback: T) -> Any | T:
        validate_key(key)
        with self._lock:
            if key not in self._data:
                return fallback
            return copy.deepcopy(self._data[key])

    def write(self, key: str, value: Any) -> None:
        validate_key(key)
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        validate_key(key)
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)
