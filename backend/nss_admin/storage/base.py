"""Key-value persistence port.

The auth core and the content collections only ever talk to this interface;
whether values end up in flat JSON files, Redis or a dict is a deployment
choice.
"""
from __future__ import annotations

import re
from typing import Any, Protocol, TypeVar

T = TypeVar("T")

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")


class StorageError(RuntimeError):
    """Raised when the backing store cannot be read or written."""


def validate_key(key: str) -> str:
    if not isinstance(key, str) or not _KEY_PATTERN.match(key) or ".." in key:
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


class KeyValueStore(Protocol):
    def read(self, key: str, fallback: T) -> Any | T:
        """Return the stored value, or ``fallback`` when nothing is stored."""
        ...

    def write(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...
